from __future__ import annotations

import re
from pathlib import Path
from typing import List, Pattern

# Separators a report may put between a field name and its value:
# whitespace, "-", ">", "=" and ":" in any run, e.g. "Name: x", "Name -> x", "Name = x".
SEPARATOR_CLASS = r"[\s\-=>:]"


def field_pattern(field_name: str) -> Pattern[str]:
    return re.compile(rf"^\s*{re.escape(field_name)}{SEPARATOR_CLASS}+", re.IGNORECASE)


class OutputScanner:
    """Pulls ``field value`` pairs out of a captured hive-dump report.

    Matching is line oriented and tolerant of the separator style, but a
    line whose separator falls outside the fixed class yields nothing.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def scan(self, path: Path, field_name: str) -> List[str]:
        pattern = field_pattern(field_name)
        values: List[str] = []
        with path.open("r", encoding=self.encoding, errors="replace") as f:
            for line in f:
                line = line.rstrip("\r\n")
                match = pattern.match(line)
                if match:
                    values.append(line[match.end():].rstrip())
        return values
