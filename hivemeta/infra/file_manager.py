from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from hivemeta.core.errors import FileAccessError
from hivemeta.infra import db
from hivemeta.infra.filesystem import copy_file, hash_file
from hivemeta.infra.logging_utils import LOGGER


@dataclass
class StoredFile:
    id: int
    name: str
    content_path: Optional[Path]
    path: Optional[Path] = None


class FileManager:
    """Resolves catalog files and saves their bytes where external tools can read them."""

    def __init__(self, case_db: db.CaseDatabase, storage_dir: Path) -> None:
        self.case_db = case_db
        self.storage_dir = storage_dir

    def get_file(self, file_id: int) -> StoredFile:
        row = db.get_file(self.case_db.conn, file_id)
        if row is None:
            raise FileAccessError(f"No catalog entry for file id {file_id}")
        local = Path(row["local_path"]) if row["local_path"] else None
        if local is not None and not local.exists():
            local = None
        return StoredFile(
            id=int(row["id"]),
            name=row["name"],
            content_path=Path(row["content_path"]) if row["content_path"] else None,
            path=local,
        )

    def save_file(self, handle: StoredFile) -> Path:
        if handle.path is not None and handle.path.exists():
            return handle.path
        if handle.content_path is None or not handle.content_path.is_file():
            raise FileAccessError(f"Content for file {handle.id} ({handle.name}) is unavailable")
        target = self.storage_dir / str(handle.id) / handle.name
        try:
            copy_file(handle.content_path, target)
            hashes = hash_file(str(target))
        except OSError as exc:
            raise FileAccessError(f"Cannot save file {handle.id} ({handle.name}): {exc}") from exc
        db.record_local_copy(self.case_db.conn, handle.id, str(target), hashes.sha256, hashes.blake3)
        handle.path = target
        LOGGER.debug(
            "File saved to local storage",
            extra={"extra_data": {"file_id": handle.id, "path": str(target), "sha256": hashes.sha256}},
        )
        return target

    def open(self, handle: StoredFile) -> BinaryIO:
        path = self.save_file(handle)
        try:
            return path.open("rb")
        except OSError as exc:
            raise FileAccessError(f"Cannot open file {handle.id} ({handle.name}): {exc}") from exc
