from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


class Status(Enum):
    """Result of a lifecycle entry point, as the host pipeline expects it."""

    OK = "ok"
    FAIL = "fail"
    STOP = "stop"


class ModuleState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    REPORTING = "reporting"
    FINALIZED = "finalized"
    FAILED = "failed"


class HiveCategory(Enum):
    NTUSER = "ntuser"
    SYSTEM = "system"
    SAM = "sam"
    SOFTWARE = "software"


@dataclass(frozen=True)
class HiveSpec:
    filename: str
    profile: str


HIVE_SPECS: Mapping[HiveCategory, HiveSpec] = MappingProxyType(
    {
        HiveCategory.NTUSER: HiveSpec(filename="NTUSER.DAT", profile="ntuser"),
        HiveCategory.SYSTEM: HiveSpec(filename="SYSTEM", profile="system"),
        HiveCategory.SAM: HiveSpec(filename="SAM", profile="sam"),
        HiveCategory.SOFTWARE: HiveSpec(filename="SOFTWARE", profile="software"),
    }
)

# Order in which a report pass visits the categories.
CATEGORY_ORDER = (
    HiveCategory.NTUSER,
    HiveCategory.SYSTEM,
    HiveCategory.SAM,
    HiveCategory.SOFTWARE,
)


@dataclass
class HiveFileRef:
    id: int
    name: str
    path: Optional[Path] = None
    # catalog handle from resolve(), reused by materialize()
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class CaptureTarget:
    directory: Path
    name: str
    file_id: int

    @property
    def path(self) -> Path:
        return self.directory / f"{self.name}_{self.file_id}.txt"


@dataclass(frozen=True)
class ExtractedField:
    name: str
    value: str


class OutcomeState(Enum):
    OK = "ok"
    TOOL_FAILED = "tool_failed"
    TIMED_OUT = "timed_out"
    MATERIALIZE_FAILED = "materialize_failed"
    NAME_MISMATCH = "name_mismatch"


@dataclass
class FileOutcome:
    category: HiveCategory
    file_id: int
    name: str
    state: OutcomeState
    exit_code: Optional[int] = None
    capture_path: Optional[Path] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is OutcomeState.OK


@dataclass
class CategoryReport:
    category: HiveCategory
    outcomes: List[FileOutcome] = field(default_factory=list)
    stopped: bool = False

    def succeeded(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    def counts(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for outcome in self.outcomes:
            totals[outcome.state.value] = totals.get(outcome.state.value, 0) + 1
        return totals


@dataclass
class RunSummary:
    categories: List[CategoryReport] = field(default_factory=list)
    artifacts_created: int = 0
    attributes_added: int = 0

    def for_category(self, category: HiveCategory) -> Optional[CategoryReport]:
        for report in self.categories:
            if report.category is category:
                return report
        return None

    def as_dict(self) -> Dict[str, object]:
        return {
            "categories": {r.category.value: r.counts() for r in self.categories},
            "artifacts_created": self.artifacts_created,
            "attributes_added": self.attributes_added,
        }


ARTIFACT_OS_INFO = "TSK_OS_INFO"
ATTR_NAME = "TSK_NAME"
ATTR_VERSION = "TSK_VERSION"
ATTR_PROC_ARCH = "TSK_PROCESSOR_ARCHITECTURE"


@dataclass(frozen=True)
class DerivedAttribute:
    attribute_type: str
    value: str
    source_field: ExtractedField
