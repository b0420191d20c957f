from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from hivemeta.core.errors import CatalogError
from hivemeta.infra.logging_utils import LOGGER

# Catalog convention for a regular file entry (directories, links etc. use other codes).
DIR_TYPE_REGULAR = 5

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS cases(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        investigator TEXT,
        notes TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS files(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        case_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        parent_path TEXT,
        dir_type INTEGER NOT NULL,
        size INTEGER,
        content_path TEXT,
        local_path TEXT,
        sha256 TEXT,
        blake3 TEXT,
        added_at TEXT NOT NULL,
        FOREIGN KEY(case_id) REFERENCES cases(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS blackboard_artifacts(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_id INTEGER NOT NULL,
        artifact_type TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(file_id) REFERENCES files(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS blackboard_attributes(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        artifact_id INTEGER NOT NULL,
        attribute_type TEXT NOT NULL,
        module TEXT NOT NULL,
        source TEXT,
        value_text TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(artifact_id) REFERENCES blackboard_artifacts(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS module_runs(
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        case_id INTEGER NOT NULL,
        module TEXT NOT NULL,
        version TEXT,
        started_at TEXT NOT NULL,
        finished_at TEXT,
        status TEXT,
        summary_json TEXT,
        FOREIGN KEY(case_id) REFERENCES cases(id)
    );
    """,
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def connect_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    for stmt in SCHEMA:
        cur.executescript(stmt)
    conn.commit()


def insert_case(conn: sqlite3.Connection, name: str, investigator: str = "", notes: str = "") -> int:
    cur = conn.execute(
        "INSERT INTO cases(name, created_at, investigator, notes) VALUES(?,?,?,?)",
        (name, _now(), investigator, notes),
    )
    conn.commit()
    return int(cur.lastrowid)


def add_file(
    conn: sqlite3.Connection,
    case_id: int,
    name: str,
    content_path: Optional[str],
    parent_path: str = "/",
    dir_type: int = DIR_TYPE_REGULAR,
    size: Optional[int] = None,
) -> int:
    if size is None and content_path and Path(content_path).exists():
        size = Path(content_path).stat().st_size
    cur = conn.execute(
        """
        INSERT INTO files(case_id, name, parent_path, dir_type, size, content_path, added_at)
        VALUES(?,?,?,?,?,?,?)
        """,
        (case_id, name, parent_path, dir_type, size, content_path, _now()),
    )
    conn.commit()
    return int(cur.lastrowid)


def get_file(conn: sqlite3.Connection, file_id: int) -> Optional[sqlite3.Row]:
    return conn.execute("SELECT * FROM files WHERE id=?", (file_id,)).fetchone()


def get_file_ids(conn: sqlite3.Connection, condition: str) -> List[int]:
    """Return ids of catalog files matching a ``WHERE ...`` filter over ``files``."""
    try:
        rows = conn.execute(f"SELECT files.id FROM files {condition} ORDER BY files.id").fetchall()
    except sqlite3.Error as exc:
        raise CatalogError(f"Catalog query failed ({condition}): {exc}") from exc
    return [int(row[0]) for row in rows]


def record_local_copy(conn: sqlite3.Connection, file_id: int, local_path: str, sha256: str, blake3_hash: str) -> None:
    conn.execute(
        "UPDATE files SET local_path=?, sha256=?, blake3=? WHERE id=?",
        (local_path, sha256, blake3_hash, file_id),
    )
    conn.commit()


def insert_artifact(conn: sqlite3.Connection, file_id: int, artifact_type: str) -> int:
    cur = conn.execute(
        "INSERT INTO blackboard_artifacts(file_id, artifact_type, created_at) VALUES(?,?,?)",
        (file_id, artifact_type, _now()),
    )
    conn.commit()
    return int(cur.lastrowid)


def insert_attribute(
    conn: sqlite3.Connection,
    artifact_id: int,
    attribute_type: str,
    module: str,
    source: str,
    value: str,
) -> int:
    cur = conn.execute(
        """
        INSERT INTO blackboard_attributes(artifact_id, attribute_type, module, source, value_text, created_at)
        VALUES(?,?,?,?,?,?)
        """,
        (artifact_id, attribute_type, module, source, value, _now()),
    )
    conn.commit()
    return int(cur.lastrowid)


def start_module_run(conn: sqlite3.Connection, case_id: int, module: str, version: str) -> int:
    cur = conn.execute(
        "INSERT INTO module_runs(case_id, module, version, started_at) VALUES(?,?,?,?)",
        (case_id, module, version, _now()),
    )
    conn.commit()
    return int(cur.lastrowid)


def finish_module_run(conn: sqlite3.Connection, run_id: int, status: str, summary: Dict[str, Any]) -> None:
    conn.execute(
        "UPDATE module_runs SET finished_at=?, status=?, summary_json=? WHERE id=?",
        (_now(), status, json.dumps(summary, sort_keys=True), run_id),
    )
    conn.commit()


def fetch_artifacts(conn: sqlite3.Connection, artifact_type: Optional[str] = None) -> List[sqlite3.Row]:
    if artifact_type is None:
        rows = conn.execute("SELECT * FROM blackboard_artifacts ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM blackboard_artifacts WHERE artifact_type=? ORDER BY id",
            (artifact_type,),
        ).fetchall()
    return list(rows)


def fetch_attributes(conn: sqlite3.Connection, artifact_id: int) -> List[sqlite3.Row]:
    rows = conn.execute(
        "SELECT * FROM blackboard_attributes WHERE artifact_id=? ORDER BY id",
        (artifact_id,),
    ).fetchall()
    return list(rows)


def fetch_module_runs(conn: sqlite3.Connection, case_id: int) -> List[sqlite3.Row]:
    rows = conn.execute(
        "SELECT * FROM module_runs WHERE case_id=? ORDER BY id",
        (case_id,),
    ).fetchall()
    return list(rows)


@dataclass
class Artifact:
    id: int
    file_id: int
    artifact_type: str
    conn: sqlite3.Connection

    def add_attribute(self, attribute_type: str, module: str, source: str, value: str) -> int:
        return insert_attribute(self.conn, self.id, attribute_type, module, source, value)


class CaseDatabase:
    def __init__(self, path: Path, case_id: Optional[int] = None) -> None:
        self.path = path
        self.conn = connect_db(self.path)
        init_schema(self.conn)
        self.case_id = case_id or self._discover_case_id()
        LOGGER.info(
            "Case database initialized",
            extra={"extra_data": {"path": str(self.path), "case_id": self.case_id}},
        )

    def _discover_case_id(self) -> Optional[int]:
        row = self.conn.execute("SELECT id FROM cases LIMIT 1").fetchone()
        return int(row[0]) if row else None

    def get_file_ids(self, condition: str) -> List[int]:
        return get_file_ids(self.conn, condition)

    def create_artifact(self, file_id: int, artifact_type: str) -> Artifact:
        artifact_id = insert_artifact(self.conn, file_id, artifact_type)
        return Artifact(id=artifact_id, file_id=file_id, artifact_type=artifact_type, conn=self.conn)

    def close(self) -> None:
        self.conn.close()
