from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

from hivemeta.core.models import DerivedAttribute, ExtractedField, HiveCategory
from hivemeta.core.scanner import OutputScanner


def passthrough(value: str) -> str:
    return value


@dataclass(frozen=True)
class FieldSpec:
    field_name: str
    attribute_type: str
    normalize: Callable[[str], str] = passthrough


class FieldProfile(ABC):
    """Fields of interest in the report of one hive category."""

    category: HiveCategory
    fields: Tuple[FieldSpec, ...] = ()

    def supports(self, category: HiveCategory) -> bool:
        return category is self.category

    def extract(self, scanner: OutputScanner, capture_path: Path) -> List[DerivedAttribute]:
        derived: List[DerivedAttribute] = []
        for spec in self.fields:
            for raw in scanner.scan(capture_path, spec.field_name):
                derived.append(
                    DerivedAttribute(
                        attribute_type=spec.attribute_type,
                        value=spec.normalize(raw),
                        source_field=ExtractedField(name=spec.field_name, value=raw),
                    )
                )
        return derived


class ProfileRegistry:
    def __init__(self) -> None:
        self.profiles: List[FieldProfile] = []

    def register(self, profile: FieldProfile) -> None:
        self.profiles.append(profile)

    def supported_for(self, category: HiveCategory) -> List[FieldProfile]:
        return [p for p in self.profiles if p.supports(category)]
