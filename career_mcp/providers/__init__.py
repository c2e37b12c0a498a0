"""Data providers backing the tool and resource handlers."""

from .base import DataProvider, DataProviderError, RecordNotFoundError, SourceNotConfiguredError
from .notion import NotionDataProvider

__all__ = [
    "DataProvider",
    "DataProviderError",
    "RecordNotFoundError",
    "SourceNotConfiguredError",
    "NotionDataProvider",
]
