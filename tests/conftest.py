import stat
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

from hivemeta.infra import db
from hivemeta.infra.file_manager import FileManager
from hivemeta.infra.properties import OUT_DIR, PROG_DIR, SystemProperties

# Stand-in for the hive-dump tool: echoes the "hive" file as its report.
# Directive lines control the run: "#exit N", "#stderr TEXT", "#flood N", "#sleep S".
FAKE_TOOL = '''#!{python}
import sys
import time

args = sys.argv[1:]
profile = args[args.index("-f") + 1]
hive = args[args.index("-r") + 1]
with open(hive, "rb") as f:
    data = f.read()
code = 0
for line in data.splitlines(keepends=True):
    if line.startswith(b"#exit "):
        code = int(line.split()[1])
    elif line.startswith(b"#stderr "):
        sys.stderr.buffer.write(line[len(b"#stderr "):])
    elif line.startswith(b"#flood "):
        size = int(line.split()[1])
        sys.stdout.buffer.write(b"x" * size + b"\\n")
        sys.stderr.buffer.write(b"y" * size + b"\\n")
    elif line.startswith(b"#sleep "):
        time.sleep(float(line.split()[1]))
    elif line.startswith(b"#profile"):
        sys.stdout.buffer.write(("profile=" + profile + "\\n").encode())
    else:
        sys.stdout.buffer.write(line)
sys.stdout.flush()
sys.exit(code)
'''



@pytest.fixture
def fake_tool(tmp_path: Path) -> Path:
    tool = tmp_path / "prog" / "RegRipper" / "rip.pl"
    tool.parent.mkdir(parents=True, exist_ok=True)
    tool.write_text(FAKE_TOOL.format(python=sys.executable), encoding="utf-8")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return tool


@pytest.fixture
def case_db(tmp_path: Path):
    database = db.CaseDatabase(tmp_path / "case.db")
    database.case_id = db.insert_case(database.conn, "Case", "tester", "")
    yield database
    database.close()


@pytest.fixture
def file_manager(case_db: db.CaseDatabase, tmp_path: Path) -> FileManager:
    return FileManager(case_db, tmp_path / "storage")


@pytest.fixture
def properties(tmp_path: Path) -> SystemProperties:
    return SystemProperties({PROG_DIR: str(tmp_path / "prog"), OUT_DIR: str(tmp_path / "out")})


@pytest.fixture
def add_hive(case_db: db.CaseDatabase, tmp_path: Path) -> Callable[..., int]:
    """Register a catalog file whose content is the report the fake tool will print."""

    def _add(name: str, report: str, dir_type: int = db.DIR_TYPE_REGULAR, content: Optional[Path] = None) -> int:
        if content is None:
            source = tmp_path / "image" / f"{len(list((tmp_path).glob('image/*')))}_{name}"
            source.parent.mkdir(parents=True, exist_ok=True)
            source.write_text(report, encoding="utf-8")
            content = source
        return db.add_file(
            case_db.conn,
            case_db.case_id,
            name=name,
            content_path=str(content),
            parent_path="/Windows/System32/config",
            dir_type=dir_type,
        )

    return _add
