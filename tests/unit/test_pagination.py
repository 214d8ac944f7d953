import pytest

from app.exceptions import ValidationError
from app.pagination import PageRequest, build_page


class TestPageRequest:
    def test_defaults(self) -> None:
        request = PageRequest()

        assert request.limit == 20
        assert request.fetch_size == 21

    @pytest.mark.parametrize("limit", [0, 101, -5])
    def test_rejects_out_of_range(self, limit: int) -> None:
        with pytest.raises(ValidationError):
            PageRequest(limit=limit)


class TestBuildPage:
    def test_full_page_with_more(self) -> None:
        page = build_page(["c", "b", "a"], PageRequest(limit=2), lambda row: row)

        assert page.data == ["c", "b"]
        assert page.has_more is True
        assert page.cursor == "b"

    def test_exact_fit_has_no_cursor(self) -> None:
        page = build_page(["b", "a"], PageRequest(limit=2), lambda row: row)

        assert page.data == ["b", "a"]
        assert page.has_more is False
        assert page.cursor is None

    def test_empty(self) -> None:
        page = build_page([], PageRequest(limit=2), lambda row: row)

        assert page.data == []
        assert page.cursor is None
