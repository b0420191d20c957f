from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from hivemeta.core.models import HiveFileRef


class FileHandle(Protocol):
    id: int
    name: str
    path: Optional[Path]


class FileContentManager(Protocol):
    def get_file(self, file_id: int) -> FileHandle:
        ...

    def save_file(self, handle: FileHandle) -> Path:
        ...


class HiveMaterializer:
    def __init__(self, files: FileContentManager) -> None:
        self.files = files

    def resolve(self, file_id: int) -> HiveFileRef:
        """Look up a catalog file without touching its content."""
        handle = self.files.get_file(file_id)
        return HiveFileRef(id=int(handle.id), name=handle.name, handle=handle)

    def materialize(self, ref: HiveFileRef) -> HiveFileRef:
        handle = ref.handle if ref.handle is not None else self.files.get_file(ref.id)
        ref.path = Path(self.files.save_file(handle))
        return ref
