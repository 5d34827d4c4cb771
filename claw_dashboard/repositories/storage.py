from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..errors import ValidationError


def check_path_segment(value: str, what: str = "filename") -> str:
    """Reject anything that could escape its directory."""
    if not value or "/" in value or "\\" in value or ".." in value:
        raise ValidationError(f"Invalid {what}")
    return value


@dataclass(frozen=True)
class FileInfo:
    name: str
    size: int
    created_at: float  # epoch seconds


class StorageRepository(ABC):
    @abstractmethod
    async def ensure_dir(self, path: str) -> None:
        pass

    @abstractmethod
    async def read_text(self, path: str) -> str:
        pass

    @abstractmethod
    async def write_text_atomic(self, path: str, content: str) -> None:
        """Write *content* so that readers never observe a partial file."""

    @abstractmethod
    async def read_bytes(self, path: str) -> bytes:
        pass

    @abstractmethod
    async def create_bytes(self, path: str, data: bytes) -> None:
        """Write *data* to a new file; raise ``FileExistsError`` if *path* exists."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def stat(self, path: str) -> Optional[FileInfo]:
        pass

    @abstractmethod
    async def list_files(self, path: str) -> List[FileInfo]:
        pass

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        pass
