import httpx
import pytest

from app.scanner.clamav_http_scanner import ClamAvHttpScanner
from app.scanner.exceptions import ScannerError, ScannerUnavailableError


def _scanner(handler) -> ClamAvHttpScanner:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ClamAvHttpScanner(url="http://clamav.local/api/v1/scan", timeout_seconds=5, client=client)


def _verdict(is_infected: bool, viruses: list[str]) -> dict:
    return {
        "success": True,
        "data": {"result": [{"name": "a.pdf", "is_infected": is_infected, "viruses": viruses}]},
    }


class TestScan:
    def test_clean_file(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.read()
            return httpx.Response(200, json=_verdict(False, []))

        verdict = _scanner(handler).scan(b"hello", "a.pdf")

        assert seen["method"] == "POST"
        assert b'name="FILES"' in seen["body"]
        assert b"hello" in seen["body"]
        assert verdict.infected is False
        assert verdict.engine == "clamav"
        assert verdict.signatures == []

    def test_infected_file(self) -> None:
        scanner = _scanner(
            lambda request: httpx.Response(200, json=_verdict(True, ["Eicar-Test-Signature"]))
        )

        verdict = scanner.scan(b"X5O!P%@AP", "eicar.com")

        assert verdict.infected is True
        assert verdict.signatures == ["Eicar-Test-Signature"]
        assert verdict.as_metadata()["filename"] == "eicar.com"


class TestErrors:
    def test_server_error_is_unavailable(self) -> None:
        scanner = _scanner(lambda request: httpx.Response(503))

        with pytest.raises(ScannerUnavailableError):
            scanner.scan(b"x", "a.pdf")

    def test_connect_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ScannerUnavailableError):
            _scanner(handler).scan(b"x", "a.pdf")

    def test_client_error_is_permanent(self) -> None:
        scanner = _scanner(lambda request: httpx.Response(413))

        with pytest.raises(ScannerError) as exc_info:
            scanner.scan(b"x", "a.pdf")
        assert not isinstance(exc_info.value, ScannerUnavailableError)

    def test_non_json_body(self) -> None:
        scanner = _scanner(lambda request: httpx.Response(200, text="OK"))

        with pytest.raises(ScannerError, match="non-JSON"):
            scanner.scan(b"x", "a.pdf")

    def test_reported_failure(self) -> None:
        scanner = _scanner(lambda request: httpx.Response(200, json={"success": False}))

        with pytest.raises(ScannerError):
            scanner.scan(b"x", "a.pdf")

    def test_missing_result_entries(self) -> None:
        scanner = _scanner(
            lambda request: httpx.Response(200, json={"success": True, "data": {"result": []}})
        )

        with pytest.raises(ScannerError, match="no result entries"):
            scanner.scan(b"x", "a.pdf")


class TestClose:
    def test_closes_client_it_created(self) -> None:
        scanner = ClamAvHttpScanner(url="http://clamav.local/api/v1/scan", timeout_seconds=5)

        scanner.close()

        assert scanner._client.is_closed

    def test_leaves_injected_client_open(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        scanner = ClamAvHttpScanner(
            url="http://clamav.local/api/v1/scan", timeout_seconds=5, client=client
        )

        scanner.close()

        assert not client.is_closed
        client.close()
