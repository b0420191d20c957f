from __future__ import annotations

from hivemeta.core.models import ATTR_PROC_ARCH, HiveCategory
from hivemeta.plugins.base import FieldProfile, FieldSpec


def normalize_architecture(value: str) -> str:
    # Only the exact token is rewritten; "amd64" or "AMD64 " stay as reported.
    return "x86-64" if value == "AMD64" else value


class SystemProfile(FieldProfile):
    category = HiveCategory.SYSTEM
    fields = (
        FieldSpec(
            field_name="ProcessorArchitecture",
            attribute_type=ATTR_PROC_ARCH,
            normalize=normalize_architecture,
        ),
    )
