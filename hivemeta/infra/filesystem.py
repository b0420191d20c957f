from __future__ import annotations

import hashlib
import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import blake3

CHUNK_SIZE = 8192


@dataclass
class FileHashResult:
    sha256: str
    blake3: str


def hash_file(path: str) -> FileHashResult:
    sha = hashlib.sha256()
    b3 = blake3.blake3()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha.update(chunk)
            b3.update(chunk)
    return FileHashResult(sha256=sha.hexdigest(), blake3=b3.hexdigest())


def copy_file(source: Path, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return target


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1].strip()
    return value


def directory_has_files(path: Path) -> bool:
    return any(p.is_file() for p in path.rglob("*"))


def read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
