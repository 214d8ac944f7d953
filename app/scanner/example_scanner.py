"""Example scanner adapter.

No network calls: every file is reported clean. Useful for local development
and tests, and as a template for real scanner adapters.
"""

from app.scanner.base import BaseScanner
from app.scanner.models import ScanVerdict


class ExampleScanner(BaseScanner):
    ENGINE = "example"

    def scan(self, content: bytes, filename: str) -> ScanVerdict:
        return ScanVerdict(
            infected=False,
            engine=self.ENGINE,
            details={"filename": filename, "bytesScanned": len(content)},
        )
