from __future__ import annotations

from hivemeta.core.models import ATTR_NAME, ATTR_VERSION, HiveCategory
from hivemeta.plugins.base import FieldProfile, FieldSpec


class SoftwareProfile(FieldProfile):
    category = HiveCategory.SOFTWARE
    fields = (
        FieldSpec(field_name="ProductName", attribute_type=ATTR_NAME),
        FieldSpec(field_name="CSDVersion", attribute_type=ATTR_VERSION),
    )
