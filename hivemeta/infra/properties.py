from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from hivemeta.infra.filesystem import read_json

PROG_DIR = "PROG_DIR"
OUT_DIR = "OUT_DIR"

ENV_PREFIX = "HIVEMETA_"


class SystemProperties:
    """Process-wide named settings. Unknown names resolve to an empty string."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = {k: str(v) for k, v in (values or {}).items()}

    @classmethod
    def from_file(cls, path: Path) -> "SystemProperties":
        return cls(read_json(path))

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "SystemProperties":
        environ = os.environ if environ is None else environ
        values = {
            key[len(ENV_PREFIX):]: value
            for key, value in environ.items()
            if key.startswith(ENV_PREFIX)
        }
        return cls(values)

    def get(self, name: str) -> str:
        return self._values.get(name, "")
