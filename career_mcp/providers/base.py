"""Data provider interface consumed by the tool and resource handlers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class DataProviderError(Exception):
    """Base exception for downstream data access failures."""
    pass


class RecordNotFoundError(DataProviderError):
    """Raised when a record id does not exist in its source."""

    def __init__(self, source_id: str, record_id: str):
        super().__init__(f"Record '{record_id}' not found in {source_id}")
        self.source_id = source_id
        self.record_id = record_id


class SourceNotConfiguredError(DataProviderError):
    """Raised when a logical source has no backing store configured."""

    def __init__(self, source_id: str):
        super().__init__(f"Notion {source_id} database ID not configured")
        self.source_id = source_id


class DataProvider(ABC):
    """Fetches raw records from named sources."""

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    def is_configured(self, source_id: str) -> bool:
        pass

    @abstractmethod
    async def fetch_records(
        self,
        source_id: str,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Dict[str, Any]]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return the records of ``source_id`` matching ``filter``."""
        pass

    @abstractmethod
    async def fetch_record(self, source_id: str, record_id: str) -> Dict[str, Any]:
        """Return a single record or raise ``RecordNotFoundError``."""
        pass
