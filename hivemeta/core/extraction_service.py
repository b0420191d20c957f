from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from hivemeta.core.catalog import HiveCatalogQuery, hive_spec, name_matches
from hivemeta.core.errors import FileAccessError, ToolTimeoutError
from hivemeta.core.invoker import ToolInvoker
from hivemeta.core.materializer import HiveMaterializer
from hivemeta.core.models import (
    CaptureTarget,
    CategoryReport,
    FileOutcome,
    HiveCategory,
    OutcomeState,
)
from hivemeta.infra.logging_utils import LOGGER


class HiveExtractionService:
    """Runs the hive-dump tool over every catalog file of one hive category.

    Per-file problems (unreadable content, a tool that exits nonzero or
    overruns its wait) become a ``FileOutcome`` and the pass moves on.
    Catalog failures and failures to spawn the tool at all propagate.
    """

    def __init__(
        self,
        query: HiveCatalogQuery,
        materializer: HiveMaterializer,
        invoker: ToolInvoker,
        report_dir: Path,
    ) -> None:
        self.query = query
        self.materializer = materializer
        self.invoker = invoker
        self.report_dir = report_dir

    def run_category(self, category: HiveCategory, stop: Optional[threading.Event] = None) -> CategoryReport:
        spec = hive_spec(category)
        file_ids = self.query.file_ids(category)
        LOGGER.info(
            "Processing hive category",
            extra={"extra_data": {"category": category.value, "candidates": len(file_ids)}},
        )
        report = CategoryReport(category=category)
        for file_id in file_ids:
            if stop is not None and stop.is_set():
                report.stopped = True
                break
            report.outcomes.append(self.process_file(category, spec.profile, file_id))
        return report

    def process_file(self, category: HiveCategory, profile: str, file_id: int) -> FileOutcome:
        try:
            ref = self.materializer.resolve(file_id)
        except FileAccessError as exc:
            LOGGER.warning(
                "Cannot resolve hive file",
                extra={"extra_data": {"category": category.value, "file_id": file_id, "error": str(exc)}},
            )
            return FileOutcome(category, file_id, "", OutcomeState.MATERIALIZE_FAILED, message=str(exc))

        if not name_matches(category, ref.name):
            LOGGER.debug(
                "Skipping file with non-matching name",
                extra={"extra_data": {"category": category.value, "file_id": file_id, "file_name": ref.name}},
            )
            return FileOutcome(category, ref.id, ref.name, OutcomeState.NAME_MISMATCH)

        try:
            self.materializer.materialize(ref)
        except FileAccessError as exc:
            LOGGER.warning(
                "Cannot materialize hive file",
                extra={"extra_data": {"category": category.value, "file_id": ref.id, "file_name": ref.name, "error": str(exc)}},
            )
            return FileOutcome(category, ref.id, ref.name, OutcomeState.MATERIALIZE_FAILED, message=str(exc))

        target = CaptureTarget(directory=self.report_dir, name=ref.name, file_id=ref.id)
        try:
            result = self.invoker.run(profile, ref.path, target)  # type: ignore[arg-type]
        except ToolTimeoutError as exc:
            LOGGER.warning(
                "Hive-dump tool timed out",
                extra={"extra_data": {"category": category.value, "file_id": ref.id, "file_name": ref.name, "error": str(exc)}},
            )
            return FileOutcome(
                category, ref.id, ref.name, OutcomeState.TIMED_OUT, capture_path=target.path, message=str(exc)
            )

        if not result.ok:
            LOGGER.warning(
                "Hive-dump tool failed on file",
                extra={"extra_data": {"category": category.value, "file_id": ref.id, "file_name": ref.name, "exit_code": result.exit_code}},
            )
            return FileOutcome(
                category,
                ref.id,
                ref.name,
                OutcomeState.TOOL_FAILED,
                exit_code=result.exit_code,
                capture_path=result.capture_path,
            )

        LOGGER.info(
            "Hive-dump tool completed",
            extra={
                "extra_data": {
                    "category": category.value,
                    "file_id": ref.id,
                    "file_name": ref.name,
                    "capture": str(result.capture_path),
                    "stdout_bytes": result.stdout_bytes,
                    "elapsed_seconds": result.elapsed_seconds,
                }
            },
        )
        return FileOutcome(
            category, ref.id, ref.name, OutcomeState.OK, exit_code=0, capture_path=result.capture_path
        )
