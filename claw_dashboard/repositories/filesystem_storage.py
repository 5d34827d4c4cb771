import asyncio
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from .storage import FileInfo, StorageRepository


def _created_at(st: os.stat_result) -> float:
    # st_birthtime only exists on macOS/BSD
    return getattr(st, "st_birthtime", None) or st.st_mtime


class FileSystemStorage(StorageRepository):
    async def ensure_dir(self, path: str) -> None:
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)

    async def read_text(self, path: str) -> str:
        p = Path(path)
        if not await self.exists(path):
            raise FileNotFoundError(f"File not found: {path}")
        return await asyncio.to_thread(p.read_text, encoding="utf-8")

    async def write_text_atomic(self, path: str, content: str) -> None:
        """Write to a sibling temp file, then rename it over *path*.

        The temp file lives in the target directory so ``os.replace`` stays
        on one filesystem and is atomic.
        """
        p = Path(path)
        await self.ensure_dir(str(p.parent))

        def _write():
            fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, p)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise

        await asyncio.to_thread(_write)

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def create_bytes(self, path: str, data: bytes) -> None:
        p = Path(path)
        await self.ensure_dir(str(p.parent))

        def _create():
            # "x" fails if the name is taken, even by a concurrent writer
            with open(p, "xb") as fh:
                try:
                    fh.write(data)
                except BaseException:
                    fh.close()
                    p.unlink()
                    raise

        await asyncio.to_thread(_create)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def stat(self, path: str) -> Optional[FileInfo]:
        p = Path(path)

        def _stat():
            if not p.is_file():
                return None
            st = p.stat()
            return FileInfo(p.name, st.st_size, _created_at(st))

        return await asyncio.to_thread(_stat)

    async def list_files(self, path: str) -> List[FileInfo]:
        p = Path(path)
        if not await self.exists(path):
            return []

        def _list():
            infos = []
            for entry in p.iterdir():
                if not entry.is_file():
                    continue
                st = entry.stat()
                infos.append(FileInfo(entry.name, st.st_size, _created_at(st)))
            return infos

        return await asyncio.to_thread(_list)

    async def delete_file(self, path: str) -> None:
        await asyncio.to_thread(Path(path).unlink)
