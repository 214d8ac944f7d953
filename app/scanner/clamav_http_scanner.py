from typing import Any

import httpx

from app.scanner.base import BaseScanner
from app.scanner.exceptions import ScannerError, ScannerUnavailableError
from app.scanner.models import ScanVerdict


class ClamAvHttpScanner(BaseScanner):
    """Scanner adapter for a ClamAV REST service (multipart upload, JSON verdict).

    Expected response shape:
        {"success": true,
         "data": {"result": [{"name": "...", "is_infected": false, "viruses": []}]}}
    """

    ENGINE = "clamav"

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: int,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def scan(self, content: bytes, filename: str) -> ScanVerdict:
        try:
            response = self._client.post(
                self._url,
                files={"FILES": (filename, content, "application/octet-stream")},
            )
            response.raise_for_status()
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ScannerUnavailableError(f"Scanner network error: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code >= 500:
                raise ScannerUnavailableError(
                    f"Scanner returned HTTP {exc.response.status_code}"
                ) from exc
            raise ScannerError(f"Scanner rejected request: HTTP {exc.response.status_code}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ScannerError("Scanner returned non-JSON response") from exc
        return self._parse(body, filename)

    def close(self) -> None:
        """Close the HTTP client if this scanner created it."""
        if self._owns_client:
            self._client.close()

    def _parse(self, body: Any, filename: str) -> ScanVerdict:
        if not isinstance(body, dict) or not body.get("success"):
            raise ScannerError(f"Scanner reported failure: {body!r}")
        results = (body.get("data") or {}).get("result")
        if not isinstance(results, list) or not results:
            raise ScannerError("Scanner response has no result entries")
        entry = results[0]
        if not isinstance(entry, dict) or not isinstance(entry.get("is_infected"), bool):
            raise ScannerError("Scanner result entry is missing 'is_infected'")
        viruses = entry.get("viruses") or []
        return ScanVerdict(
            infected=entry["is_infected"],
            engine=self.ENGINE,
            signatures=[str(v) for v in viruses],
            details={"filename": filename},
        )
