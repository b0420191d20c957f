from __future__ import annotations

from typing import List, Protocol

from hivemeta.core.errors import UnknownCategoryError
from hivemeta.core.models import HIVE_SPECS, HiveCategory, HiveSpec
from hivemeta.infra.db import DIR_TYPE_REGULAR


class FileCatalog(Protocol):
    def get_file_ids(self, condition: str) -> List[int]:
        ...


def hive_spec(category: HiveCategory) -> HiveSpec:
    try:
        return HIVE_SPECS[category]
    except KeyError:
        raise UnknownCategoryError(f"Unknown hive category: {category!r}") from None


def build_condition(category: HiveCategory) -> str:
    filename = hive_spec(category).filename
    return f"WHERE files.dir_type = {DIR_TYPE_REGULAR} AND UPPER(files.name) = '{filename}'"


def name_matches(category: HiveCategory, name: str) -> bool:
    """Catalog results can be broader than the filter; re-check the exact name."""
    return name.casefold() == hive_spec(category).filename.casefold()


class HiveCatalogQuery:
    def __init__(self, catalog: FileCatalog) -> None:
        self.catalog = catalog

    def file_ids(self, category: HiveCategory) -> List[int]:
        return list(self.catalog.get_file_ids(build_condition(category)))
