from abc import ABC, abstractmethod

from app.scanner.models import ScanVerdict


class BaseScanner(ABC):
    """Contract for antivirus / content-inspection adapters."""

    @abstractmethod
    def scan(self, content: bytes, filename: str) -> ScanVerdict:
        """Inspect file content.

        Raises:
            ScannerUnavailableError: if the scanner cannot be reached.
            ScannerError: if the scanner response cannot be interpreted.
        """

    def close(self) -> None:
        """Release network resources held by the adapter."""
