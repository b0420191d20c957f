from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from hivemeta.core.models import ARTIFACT_OS_INFO
from hivemeta.infra import db
from hivemeta.infra.filesystem import write_json
from hivemeta.infra.logging_utils import LOGGER


def collect_os_info(case_db: db.CaseDatabase) -> List[Dict[str, Any]]:
    conn = case_db.conn
    entries: List[Dict[str, Any]] = []
    for artifact in db.fetch_artifacts(conn, ARTIFACT_OS_INFO):
        file_row = db.get_file(conn, artifact["file_id"])
        entries.append(
            {
                "artifact_id": artifact["id"],
                "file_id": artifact["file_id"],
                "file_name": file_row["name"] if file_row else None,
                "attributes": [
                    {"type": row["attribute_type"], "value": row["value_text"], "module": row["module"]}
                    for row in db.fetch_attributes(conn, artifact["id"])
                ],
            }
        )
    return entries


def generate_os_info_report(case_db: db.CaseDatabase, output_path: Path) -> Path:
    payload: Dict[str, Any] = {
        "case_id": case_db.case_id,
        "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "artifacts": collect_os_info(case_db),
    }
    write_json(output_path, payload)
    LOGGER.info(
        "OS information report generated",
        extra={"extra_data": {"output": str(output_path), "artifacts": len(payload["artifacts"])}},
    )
    return output_path
