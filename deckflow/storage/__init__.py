"""Local storage collaborators."""

from .local import JsonDealTracker, JsonRecordRegistry, LocalStorageSink, read_json, write_json

__all__ = [
    "JsonDealTracker",
    "JsonRecordRegistry",
    "LocalStorageSink",
    "read_json",
    "write_json",
]
