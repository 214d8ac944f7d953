import logging

from app.logging.logger import _ContextFormatter


def _record(context: dict | None) -> logging.LogRecord:
    record = logging.LogRecord("casefile", logging.INFO, __file__, 1, "Job completed", None, None)
    if context is not None:
        record.context = context
    return record


class TestContextFormatter:
    def test_appends_sorted_context(self) -> None:
        formatter = _ContextFormatter("%(message)s")

        line = formatter.format(_record({"queue": "documents", "job_id": "j1"}))

        assert line == "Job completed | job_id=j1 queue=documents"

    def test_plain_message_without_context(self) -> None:
        formatter = _ContextFormatter("%(message)s")

        assert formatter.format(_record({})) == "Job completed"
        assert formatter.format(_record(None)) == "Job completed"
