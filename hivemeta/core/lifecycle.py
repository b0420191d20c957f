from __future__ import annotations

import shutil
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from hivemeta import __version__
from hivemeta.core.catalog import HiveCatalogQuery
from hivemeta.core.config import ModuleConfig
from hivemeta.core.errors import (
    CatalogError,
    ConfigurationError,
    ModuleStateError,
    ToolExecutionError,
    UnknownCategoryError,
)
from hivemeta.core.extraction_service import HiveExtractionService
from hivemeta.core.invoker import ToolInvoker
from hivemeta.core.materializer import FileContentManager, HiveMaterializer
from hivemeta.core.models import CATEGORY_ORDER, HiveCategory, ModuleState, RunSummary, Status
from hivemeta.core.recorder import MODULE_NAME, ArtifactRecorder
from hivemeta.infra import db
from hivemeta.infra.filesystem import directory_has_files, is_executable
from hivemeta.infra.logging_utils import LOGGER
from hivemeta.infra.properties import SystemProperties

# Categories whose reports carry operating-system facts.
FIELD_CATEGORIES = (HiveCategory.SOFTWARE, HiveCategory.SYSTEM)


class RegRipperModule:
    """Report module running the hive-dump tool over the standard registry hives.

    ``initialize`` -> ``report`` (any number of times) -> ``finalize``; each
    returns a ``Status`` for the host pipeline.
    """

    def __init__(
        self,
        case_db: db.CaseDatabase,
        files: FileContentManager,
        properties: Optional[SystemProperties] = None,
        recorder: Optional[ArtifactRecorder] = None,
    ) -> None:
        self.case_db = case_db
        self.files = files
        self.properties = properties or SystemProperties()
        self.recorder = recorder or ArtifactRecorder(case_db)
        self.state = ModuleState.UNINITIALIZED
        self.config: Optional[ModuleConfig] = None
        self.service: Optional[HiveExtractionService] = None
        self.last_summary: Optional[RunSummary] = None
        self._stop = threading.Event()

    def initialize(self, args: str = "") -> Status:
        if self.state is not ModuleState.UNINITIALIZED:
            raise ModuleStateError(f"initialize called in state {self.state.value}")
        try:
            config = ModuleConfig.from_args(args, self.properties)
            # set before the layout exists so finalize can clean up a partial one
            self.config = config
            if not is_executable(config.tool_path):
                raise ConfigurationError(f"{config.tool_path} does not exist or is not executable")
            config.report_dir.mkdir(parents=True, exist_ok=True)
            config.error_dir.mkdir(parents=True, exist_ok=True)
            config.error_file.touch(exist_ok=True)
        except ConfigurationError as exc:
            LOGGER.error("Module configuration failed", extra={"extra_data": {"error": str(exc)}})
            self.state = ModuleState.FAILED
            return Status.FAIL
        except OSError as exc:
            LOGGER.error("Cannot create module output directories", extra={"extra_data": {"error": str(exc)}})
            self.state = ModuleState.FAILED
            return Status.FAIL

        self.service = HiveExtractionService(
            query=HiveCatalogQuery(self.case_db),
            materializer=HiveMaterializer(self.files),
            invoker=ToolInvoker(config.tool_path, config.error_file, timeout=config.timeout),
            report_dir=config.report_dir,
        )
        self.state = ModuleState.READY
        LOGGER.info(
            "Module initialized",
            extra={
                "extra_data": {
                    "tool": str(config.tool_path),
                    "output": str(config.output_root),
                    "timeout": config.timeout,
                }
            },
        )
        return Status.OK

    def request_stop(self) -> None:
        self._stop.set()

    def report(self) -> Status:
        if self.state is not ModuleState.READY or self.service is None:
            raise ModuleStateError(f"report called in state {self.state.value}")
        self.state = ModuleState.REPORTING
        summary = RunSummary()
        self.last_summary = summary
        status = Status.OK
        next_state = ModuleState.READY
        run_id = self._start_run()
        try:
            for category in CATEGORY_ORDER:
                if self._stop.is_set():
                    status = Status.STOP
                    break
                category_report = self.service.run_category(category, self._stop)
                summary.categories.append(category_report)
                if category_report.stopped:
                    status = Status.STOP
                    break
            if status is Status.OK:
                self._record_fields(summary)
        except UnknownCategoryError as exc:
            LOGGER.error("Hive category mapping is broken", extra={"extra_data": {"error": str(exc)}})
            status = Status.FAIL
            next_state = ModuleState.FAILED
        except (CatalogError, ToolExecutionError, sqlite3.Error, OSError) as exc:
            LOGGER.error(
                "Report pass aborted",
                extra={"extra_data": {"error": str(exc), "error_type": type(exc).__name__}},
            )
            status = Status.FAIL
        except Exception as exc:
            LOGGER.error(
                "Report pass failed unexpectedly",
                extra={"extra_data": {"error": str(exc), "error_type": type(exc).__name__}},
                exc_info=True,
            )
            status = Status.FAIL
        finally:
            self._stop.clear()
            self.state = next_state
            self._finish_run(run_id, status, summary)

        if status is Status.STOP:
            LOGGER.info("Report pass stopped on request", extra={"extra_data": summary.as_dict()})
        elif status is Status.OK:
            LOGGER.info("Report pass completed", extra={"extra_data": summary.as_dict()})
        return status

    def _record_fields(self, summary: RunSummary) -> None:
        for category in FIELD_CATEGORIES:
            category_report = summary.for_category(category)
            if category_report is None:
                continue
            for outcome in category_report.succeeded():
                result = self.recorder.record(outcome)
                if result.artifact_id is not None:
                    summary.artifacts_created += 1
                    summary.attributes_added += len(result.attributes)

    def _start_run(self) -> Optional[int]:
        if not self.case_db.case_id:
            return None
        return db.start_module_run(self.case_db.conn, self.case_db.case_id, MODULE_NAME, __version__)

    def _finish_run(self, run_id: Optional[int], status: Status, summary: RunSummary) -> None:
        if run_id is None:
            return
        try:
            db.finish_module_run(self.case_db.conn, run_id, status.value, summary.as_dict())
        except sqlite3.Error as exc:
            LOGGER.warning("Cannot record module run", extra={"extra_data": {"run_id": run_id, "error": str(exc)}})

    def finalize(self) -> Status:
        if self.state is ModuleState.REPORTING:
            raise ModuleStateError("finalize called while a report pass is running")
        if self.state is ModuleState.FINALIZED:
            return Status.OK
        if self.config is not None:
            self._cleanup(self.config)
        if self.state is not ModuleState.FAILED:
            self.state = ModuleState.FINALIZED
        return Status.OK

    def _cleanup(self, config: ModuleConfig) -> None:
        reports_removed = _remove_report_dir(config.report_dir)
        errors_removed = _remove_error_capture(config.error_file, config.error_dir)
        if reports_removed and errors_removed and config.output_root.exists():
            try:
                config.output_root.rmdir()
            except OSError as exc:
                LOGGER.warning(
                    "Cannot remove module output directory",
                    extra={"extra_data": {"path": str(config.output_root), "error": str(exc)}},
                )


def _remove_report_dir(report_dir: Path) -> bool:
    if not report_dir.exists():
        return True
    if directory_has_files(report_dir):
        return False
    try:
        shutil.rmtree(report_dir)
    except OSError as exc:
        LOGGER.warning("Cannot remove empty report directory", extra={"extra_data": {"path": str(report_dir), "error": str(exc)}})
        return False
    return True


def _remove_error_capture(error_file: Path, error_dir: Path) -> bool:
    try:
        if error_file.exists():
            if error_file.stat().st_size != 0:
                return False
            error_file.unlink()
        if error_dir.exists():
            error_dir.rmdir()
    except OSError as exc:
        LOGGER.warning("Cannot remove empty error capture", extra={"extra_data": {"path": str(error_file), "error": str(exc)}})
        return False
    return True
