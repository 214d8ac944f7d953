from abc import ABC, abstractmethod


class BaseObjectStorage(ABC):
    """Contract for object-storage adapters."""

    @abstractmethod
    def issue_upload_url(
        self, bucket: str, key: str, content_type: str, expires_in: int
    ) -> str:
        """Return a presigned URL allowing a single PUT of `key` until it expires."""

    @abstractmethod
    def issue_download_url(self, bucket: str, key: str, expires_in: int) -> str:
        """Return a presigned URL allowing GET of `key` until it expires."""

    @abstractmethod
    def object_exists(self, bucket: str, key: str) -> bool:
        """Return True if the object is present.

        Raises:
            StorageError: on any failure other than "not found".
        """

    @abstractmethod
    def read_object(self, bucket: str, key: str) -> bytes:
        """Return the full object body.

        Raises:
            StorageObjectNotFoundError: if the object does not exist.
            StorageUnavailableError: if storage cannot be reached.
        """

    @abstractmethod
    def health_check(self) -> bool:
        """Return True if storage is reachable."""
