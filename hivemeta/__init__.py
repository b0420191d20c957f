__app_name__ = "HiveMeta"
__version__ = "0.3.0"
