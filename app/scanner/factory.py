from app.config.settings import Settings
from app.scanner.base import BaseScanner
from app.scanner.clamav_http_scanner import ClamAvHttpScanner
from app.scanner.example_scanner import ExampleScanner


class ScannerFactory:
    """Creates the configured scanner adapter."""

    SUPPORTED = ("example", "clamav_http")

    @classmethod
    def create(cls, settings: Settings) -> BaseScanner:
        provider = settings.scanner_provider.lower()
        if provider == "example":
            return ExampleScanner()
        if provider == "clamav_http":
            url = (settings.scanner_url or "").strip()
            if not url:
                raise ValueError("scanner_url is required for scanner_provider=clamav_http")
            return ClamAvHttpScanner(
                url=url, timeout_seconds=settings.scanner_timeout_seconds
            )
        raise ValueError(
            f"Unknown scanner provider '{provider}'. Choose from: {list(cls.SUPPORTED)}"
        )
