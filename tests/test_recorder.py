from pathlib import Path

from hivemeta.core.models import (
    ARTIFACT_OS_INFO,
    ATTR_NAME,
    ATTR_PROC_ARCH,
    ATTR_VERSION,
    FileOutcome,
    HiveCategory,
    OutcomeState,
)
from hivemeta.core.recorder import ArtifactRecorder, default_profiles
from hivemeta.infra import db
from hivemeta.plugins.software import SoftwareProfile
from hivemeta.plugins.system import SystemProfile, normalize_architecture


def outcome_for(category: HiveCategory, file_id: int, capture: Path, state: OutcomeState = OutcomeState.OK) -> FileOutcome:
    return FileOutcome(category, file_id, category.value.upper(), state, exit_code=0, capture_path=capture)


def attributes_of(case_db, artifact_id):
    return [(row["attribute_type"], row["value_text"]) for row in db.fetch_attributes(case_db.conn, artifact_id)]


def test_architecture_normalization() -> None:
    assert normalize_architecture("AMD64") == "x86-64"
    assert normalize_architecture("x86") == "x86"
    assert normalize_architecture("amd64") == "amd64"
    assert normalize_architecture("IA64") == "IA64"


def test_profiles_cover_software_and_system_only() -> None:
    registry = default_profiles()
    assert [type(p) for p in registry.supported_for(HiveCategory.SOFTWARE)] == [SoftwareProfile]
    assert [type(p) for p in registry.supported_for(HiveCategory.SYSTEM)] == [SystemProfile]
    assert registry.supported_for(HiveCategory.NTUSER) == []
    assert registry.supported_for(HiveCategory.SAM) == []


def test_software_report_becomes_one_artifact(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SOFTWARE", "")
    capture = tmp_path / "SOFTWARE_1.txt"
    capture.write_text("ProductName: Windows 7 Ultimate\nCSDVersion-> Service Pack 1\n", encoding="utf-8")
    result = ArtifactRecorder(case_db).record(outcome_for(HiveCategory.SOFTWARE, file_id, capture))

    artifacts = db.fetch_artifacts(case_db.conn, ARTIFACT_OS_INFO)
    assert len(artifacts) == 1
    assert artifacts[0]["file_id"] == file_id
    assert result.artifact_id == artifacts[0]["id"]
    assert attributes_of(case_db, result.artifact_id) == [
        (ATTR_NAME, "Windows 7 Ultimate"),
        (ATTR_VERSION, "Service Pack 1"),
    ]
    row = db.fetch_attributes(case_db.conn, result.artifact_id)[0]
    assert row["module"] == "RegRipper"
    assert row["source"] == ""


def test_system_architecture_is_normalized(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SYSTEM", "")
    capture = tmp_path / "SYSTEM_2.txt"
    capture.write_text("ProcessorArchitecture=AMD64\n", encoding="utf-8")
    result = ArtifactRecorder(case_db).record(outcome_for(HiveCategory.SYSTEM, file_id, capture))
    assert attributes_of(case_db, result.artifact_id) == [(ATTR_PROC_ARCH, "x86-64")]


def test_multiple_matches_give_multiple_attributes(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SOFTWARE", "")
    capture = tmp_path / "SOFTWARE_3.txt"
    capture.write_text("ProductName: A\nProductName: B\n", encoding="utf-8")
    result = ArtifactRecorder(case_db).record(outcome_for(HiveCategory.SOFTWARE, file_id, capture))
    assert attributes_of(case_db, result.artifact_id) == [(ATTR_NAME, "A"), (ATTR_NAME, "B")]


def test_missing_capture_is_skipped(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SOFTWARE", "")
    result = ArtifactRecorder(case_db).record(outcome_for(HiveCategory.SOFTWARE, file_id, tmp_path / "absent.txt"))
    assert result.artifact_id is None
    assert db.fetch_artifacts(case_db.conn) == []


def test_failed_invocation_is_not_recorded(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SOFTWARE", "")
    capture = tmp_path / "SOFTWARE_4.txt"
    capture.write_text("ProductName: Windows 7\n", encoding="utf-8")
    outcome = outcome_for(HiveCategory.SOFTWARE, file_id, capture, state=OutcomeState.TOOL_FAILED)
    assert ArtifactRecorder(case_db).record(outcome).artifact_id is None


def test_report_without_fields_creates_no_artifact(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SOFTWARE", "")
    capture = tmp_path / "SOFTWARE_5.txt"
    capture.write_text("nothing useful\nProductName:\n", encoding="utf-8")
    assert ArtifactRecorder(case_db).record(outcome_for(HiveCategory.SOFTWARE, file_id, capture)).artifact_id is None
    assert db.fetch_artifacts(case_db.conn) == []


def test_rerecording_duplicates_attributes(case_db, add_hive, tmp_path: Path) -> None:
    file_id = add_hive("SYSTEM", "")
    capture = tmp_path / "SYSTEM_6.txt"
    capture.write_text("ProcessorArchitecture: x86\n", encoding="utf-8")
    recorder = ArtifactRecorder(case_db)
    recorder.record(outcome_for(HiveCategory.SYSTEM, file_id, capture))
    recorder.record(outcome_for(HiveCategory.SYSTEM, file_id, capture))
    assert len(db.fetch_artifacts(case_db.conn, ARTIFACT_OS_INFO)) == 2
