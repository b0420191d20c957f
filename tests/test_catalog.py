from typing import List

import pytest

from hivemeta.core.catalog import HiveCatalogQuery, build_condition, hive_spec, name_matches
from hivemeta.core.errors import CatalogError, UnknownCategoryError
from hivemeta.core.models import CATEGORY_ORDER, HIVE_SPECS, HiveCategory
from hivemeta.infra import db


def test_every_category_maps_to_filename_and_profile() -> None:
    assert set(HIVE_SPECS) == set(HiveCategory)
    for category in HiveCategory:
        spec = hive_spec(category)
        assert spec.filename
        assert spec.profile
    assert hive_spec(HiveCategory.NTUSER).filename == "NTUSER.DAT"
    assert hive_spec(HiveCategory.SOFTWARE).profile == "software"


def test_category_order_is_fixed() -> None:
    assert CATEGORY_ORDER == (HiveCategory.NTUSER, HiveCategory.SYSTEM, HiveCategory.SAM, HiveCategory.SOFTWARE)


def test_mapping_is_read_only() -> None:
    with pytest.raises(TypeError):
        HIVE_SPECS[HiveCategory.SAM] = None  # type: ignore[index]


def test_unknown_category_rejected() -> None:
    with pytest.raises(UnknownCategoryError):
        hive_spec("BOOT")  # type: ignore[arg-type]


def test_condition_selects_regular_files_by_upper_name() -> None:
    condition = build_condition(HiveCategory.SYSTEM)
    assert condition == "WHERE files.dir_type = 5 AND UPPER(files.name) = 'SYSTEM'"


def test_name_check_is_case_insensitive() -> None:
    assert name_matches(HiveCategory.NTUSER, "ntuser.dat")
    assert name_matches(HiveCategory.SAM, "Sam")
    assert not name_matches(HiveCategory.SAM, "SAM.LOG1")
    assert not name_matches(HiveCategory.SYSTEM, "SYSTEM ")


def test_query_returns_matching_regular_files(case_db, add_hive) -> None:
    wanted = add_hive("SOFTWARE", "")
    lower = add_hive("software", "")
    add_hive("SOFTWARE", "", dir_type=3)
    add_hive("SOFTWARE.LOG1", "")
    add_hive("SYSTEM", "")
    ids = HiveCatalogQuery(case_db).file_ids(HiveCategory.SOFTWARE)
    assert ids == [wanted, lower]


class BrokenCatalog:
    def get_file_ids(self, condition: str) -> List[int]:
        raise CatalogError("database is locked")


def test_catalog_failure_propagates() -> None:
    with pytest.raises(CatalogError):
        HiveCatalogQuery(BrokenCatalog()).file_ids(HiveCategory.SAM)


def test_malformed_condition_becomes_catalog_error(case_db) -> None:
    with pytest.raises(CatalogError):
        db.get_file_ids(case_db.conn, "WHERE no_such_column = 1")
