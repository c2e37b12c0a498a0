"""Notion API backed data provider."""

from typing import Any, Dict, List, Optional
from notion_client import AsyncClient
from notion_client.errors import APIResponseError, RequestTimeoutError
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import DataProvider, DataProviderError, RecordNotFoundError, SourceNotConfiguredError
from ..config import NotionConfig

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class NotionDataProvider(DataProvider):
    """Maps logical sources (initiatives, achievements, tasks) to Notion databases."""

    def __init__(self, config: NotionConfig, client: Optional[AsyncClient] = None):
        self.config = config
        self.client = client
        self._databases = {
            "initiatives": config.initiatives_db_id,
            "achievements": config.achievements_db_id,
            "tasks": config.tasks_db_id,
        }

    async def initialize(self) -> None:
        """Initialize Notion API client."""
        if self.client is not None:
            return
        if not self.config.api_token:
            logger.warning("Notion API token not configured; data sources unavailable")
            return

        self.client = AsyncClient(auth=self.config.api_token, timeout_ms=self.config.timeout_ms)
        logger.info(
            "Notion API client initialized",
            sources=[name for name, database_id in self._databases.items() if database_id],
        )

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def is_configured(self, source_id: str) -> bool:
        return bool(self._databases.get(source_id))

    def _database_id(self, source_id: str) -> str:
        database_id = self._databases.get(source_id)
        if not database_id:
            raise SourceNotConfiguredError(source_id)
        if self.client is None:
            raise DataProviderError("Notion API client not initialized")
        return database_id

    async def fetch_records(
        self,
        source_id: str,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Dict[str, Any]]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        database_id = self._database_id(source_id)

        query_params: Dict[str, Any] = {"database_id": database_id}
        if filter:
            query_params["filter"] = filter
        if sort:
            query_params["sorts"] = sort
        query_params["page_size"] = min(limit or MAX_PAGE_SIZE, MAX_PAGE_SIZE)

        result = await self._execute_notion_call(self._query, query_params)
        logger.debug("Notion records fetched", source=source_id, count=len(result["results"]))
        return result["results"]

    async def fetch_record(self, source_id: str, record_id: str) -> Dict[str, Any]:
        self._database_id(source_id)
        return await self._execute_notion_call(
            self._retrieve, record_id, source_id=source_id, record_id=record_id
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(RequestTimeoutError),
        reraise=True,
    )
    async def _query(self, query_params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.client.databases.query(**query_params)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(RequestTimeoutError),
        reraise=True,
    )
    async def _retrieve(self, page_id: str) -> Dict[str, Any]:
        return await self.client.pages.retrieve(page_id=page_id)

    async def _execute_notion_call(self, call, *args, source_id=None, record_id=None):
        """Execute Notion API call with error handling."""
        try:
            return await call(*args)
        except APIResponseError as e:
            logger.error("Notion API error", error=str(e), code=e.code)
            if record_id is not None and e.code == "object_not_found":
                raise RecordNotFoundError(source_id, record_id)
            raise DataProviderError(f"Notion API error {e.code}: {e}")
        except RequestTimeoutError as e:
            logger.error("Notion API timeout", error=str(e))
            raise DataProviderError("Notion API request timed out")
        except DataProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected Notion error", error=str(e))
            raise DataProviderError(f"Notion error: {e}")

