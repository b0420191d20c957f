"""Exceptions raised by the hive extraction module."""


class HiveMetaError(Exception):
    """Base exception for hivemeta."""


class ConfigurationError(HiveMetaError):
    """Module arguments or system properties are missing or invalid."""


class ModuleStateError(HiveMetaError):
    """Lifecycle entry point called from a state that does not allow it."""


class UnknownCategoryError(HiveMetaError):
    """Hive category has no filename/profile mapping."""


class CatalogError(HiveMetaError):
    """Evidence catalog could not be queried."""


class FileAccessError(HiveMetaError):
    """File content could not be resolved or materialized."""


class ToolExecutionError(HiveMetaError):
    """Hive-dump tool could not be spawned or its output could not be captured."""


class ToolTimeoutError(HiveMetaError):
    """Hive-dump tool did not exit within the configured wait."""
