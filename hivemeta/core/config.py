from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from hivemeta.core.errors import ConfigurationError
from hivemeta.infra.filesystem import strip_quotes
from hivemeta.infra.logging_utils import LOGGER
from hivemeta.infra.properties import OUT_DIR, PROG_DIR, SystemProperties

MODULE_DIR_NAME = "RegRipper"
ERROR_DIR_NAME = "RegRipperError"
ERROR_FILE_NAME = "RegRipperError.txt"
REPORT_DIR_NAME = "RegRipperOutput"

# Flag tokens look like "-e <value>"; the value starts past the flag and its separator.
FLAG_PREFIX_LEN = 3


def default_tool_name() -> str:
    return "rip.exe" if sys.platform.startswith("win") else "rip.pl"


@dataclass(frozen=True)
class ModuleConfig:
    tool_path: Path
    output_root: Path
    timeout: Optional[float] = None

    @property
    def report_dir(self) -> Path:
        return self.output_root / REPORT_DIR_NAME

    @property
    def error_dir(self) -> Path:
        return self.output_root / ERROR_DIR_NAME

    @property
    def error_file(self) -> Path:
        return self.error_dir / ERROR_FILE_NAME

    @classmethod
    def from_args(cls, args: str, properties: SystemProperties) -> "ModuleConfig":
        """Build the configuration from a ``;``-separated argument string.

        Recognized flags are ``-e`` (hive-dump executable), ``-o`` (output
        directory) and ``-t`` (seconds to wait for each tool run). Paths not
        given explicitly are derived from the ``PROG_DIR`` and ``OUT_DIR``
        system properties.
        """
        tool_path = ""
        output_root = ""
        timeout: Optional[float] = None

        for token in (args or "").split(";"):
            token = token.strip()
            if not token:
                continue
            if token.startswith("-e"):
                tool_path = _flag_value(token, "-e")
            elif token.startswith("-o"):
                output_root = _flag_value(token, "-o")
            elif token.startswith("-t"):
                timeout = _parse_timeout(_flag_value(token, "-t"))
            else:
                LOGGER.warning("Ignoring unrecognized module argument", extra={"extra_data": {"argument": token}})

        if not tool_path:
            prog_dir = properties.get(PROG_DIR)
            tool_path = str(Path(prog_dir) / MODULE_DIR_NAME / default_tool_name())

        if not output_root:
            out_dir = properties.get(OUT_DIR)
            if not out_dir:
                raise ConfigurationError("Empty output path: no -o argument and OUT_DIR is not set")
            output_root = str(Path(out_dir) / MODULE_DIR_NAME)

        return cls(tool_path=Path(tool_path), output_root=Path(output_root), timeout=timeout)


def _flag_value(token: str, flag: str) -> str:
    value = strip_quotes(token[FLAG_PREFIX_LEN:])
    if not value:
        raise ConfigurationError(f"Missing argument to {flag} option")
    return value


def _parse_timeout(value: str) -> float:
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid -t value: {value!r}") from exc
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigurationError(f"-t must be positive, got {value!r}")
    return timeout
