from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

from hivemeta.core.models import ARTIFACT_OS_INFO, DerivedAttribute, FileOutcome
from hivemeta.core.scanner import OutputScanner
from hivemeta.infra.logging_utils import LOGGER
from hivemeta.plugins.base import ProfileRegistry
from hivemeta.plugins.software import SoftwareProfile
from hivemeta.plugins.system import SystemProfile

MODULE_NAME = "RegRipper"
SOURCE_TAG = ""


class ArtifactHandle(Protocol):
    id: int

    def add_attribute(self, attribute_type: str, module: str, source: str, value: str) -> int:
        ...


class EvidenceStore(Protocol):
    def create_artifact(self, file_id: int, artifact_type: str) -> ArtifactHandle:
        ...


@dataclass
class RecordResult:
    file_id: int
    artifact_id: Optional[int]
    attributes: List[DerivedAttribute]


def default_profiles() -> ProfileRegistry:
    registry = ProfileRegistry()
    registry.register(SoftwareProfile())
    registry.register(SystemProfile())
    return registry


class ArtifactRecorder:
    def __init__(
        self,
        store: EvidenceStore,
        scanner: Optional[OutputScanner] = None,
        profiles: Optional[ProfileRegistry] = None,
        module_name: str = MODULE_NAME,
    ) -> None:
        self.store = store
        self.scanner = scanner or OutputScanner()
        self.profiles = profiles or default_profiles()
        self.module_name = module_name

    def collect(self, outcome: FileOutcome) -> List[DerivedAttribute]:
        capture: Optional[Path] = outcome.capture_path
        if not outcome.succeeded or capture is None or not capture.is_file():
            return []
        derived: List[DerivedAttribute] = []
        for profile in self.profiles.supported_for(outcome.category):
            derived.extend(profile.extract(self.scanner, capture))
        return [d for d in derived if d.value]

    def record(self, outcome: FileOutcome) -> RecordResult:
        """Create one OS-information artifact for the file, holding every matched value."""
        attributes = self.collect(outcome)
        if not attributes:
            LOGGER.debug(
                "No fields extracted",
                extra={"extra_data": {"file_id": outcome.file_id, "file_name": outcome.name, "state": outcome.state.value}},
            )
            return RecordResult(file_id=outcome.file_id, artifact_id=None, attributes=[])

        artifact = self.store.create_artifact(outcome.file_id, ARTIFACT_OS_INFO)
        for attribute in attributes:
            artifact.add_attribute(attribute.attribute_type, self.module_name, SOURCE_TAG, attribute.value)
        LOGGER.info(
            "Recorded operating system information",
            extra={
                "extra_data": {
                    "file_id": outcome.file_id,
                    "file_name": outcome.name,
                    "artifact_id": artifact.id,
                    "attributes": [f"{a.attribute_type}={a.value}" for a in attributes],
                }
            },
        )
        return RecordResult(file_id=outcome.file_id, artifact_id=artifact.id, attributes=attributes)
