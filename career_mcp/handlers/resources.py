"""Resource listing, reading and subscription handlers for ``notion://`` URIs."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple
from urllib.parse import quote, unquote

from .pagination import page_result
from ..career.service import SOURCES, CareerDataService
from ..protocol.errors import (
    InternalError,
    InvalidParamsError,
    ResourceNotFoundError,
)
from ..protocol.handler import BaseHandler
from ..protocol.messages import (
    MCPMethod,
    PaginatedParams,
    ResourceContents,
    ResourceDefinition,
    ResourceTemplateDefinition,
    ResourceUriParams,
)
from ..protocol.session import RequestContext
from ..providers.base import DataProviderError, RecordNotFoundError, SourceNotConfiguredError

SCHEME = "notion://"
JSON_MIME = "application/json"
MARKDOWN_MIME = "text/markdown"
SEARCH_RESOURCE_LIMIT = 10

RESOURCES = [
    ResourceDefinition(
        uri="notion://initiatives",
        name="Career Initiatives",
        description="Current career development initiatives and projects",
        mimeType=JSON_MIME,
    ),
    ResourceDefinition(
        uri="notion://achievements",
        name="Career Achievements",
        description="Comprehensive record of career accomplishments",
        mimeType=JSON_MIME,
    ),
    ResourceDefinition(
        uri="notion://tasks",
        name="Career Tasks",
        description="Action items and tasks for career development",
        mimeType=JSON_MIME,
    ),
    ResourceDefinition(
        uri="notion://career-summary",
        name="Career Summary",
        description="Comprehensive career overview and analysis",
        mimeType=MARKDOWN_MIME,
    ),
]

RESOURCE_TEMPLATES = [
    ResourceTemplateDefinition(
        uriTemplate="notion://initiatives/{id}",
        name="Specific Initiative",
        description="Individual career initiative by ID",
        mimeType=JSON_MIME,
    ),
    ResourceTemplateDefinition(
        uriTemplate="notion://achievements/{id}",
        name="Specific Achievement",
        description="Individual achievement by ID",
        mimeType=JSON_MIME,
    ),
    ResourceTemplateDefinition(
        uriTemplate="notion://tasks/{id}",
        name="Specific Task",
        description="Individual task by ID",
        mimeType=JSON_MIME,
    ),
    ResourceTemplateDefinition(
        uriTemplate="notion://search/{query}",
        name="Career Data Search",
        description="Search results across all career data",
        mimeType=JSON_MIME,
    ),
]

RESOURCE_TYPES = frozenset(SOURCES) | {"career-summary", "search"}


def parse_resource_uri(uri: str) -> Tuple[str, List[str]]:
    """Split ``notion://type/rest`` into the type and its path segments."""
    if not uri.startswith(SCHEME):
        raise ResourceNotFoundError(f"Unsupported URI scheme: {uri}")

    resource_type, *rest = uri[len(SCHEME):].split("/")
    if resource_type not in RESOURCE_TYPES:
        raise ResourceNotFoundError(f"Unknown resource type: {resource_type}")
    return resource_type, rest


def _json_contents(uri: str, payload: Any) -> Dict[str, Any]:
    contents = ResourceContents(uri=uri, mimeType=JSON_MIME, text=json.dumps(payload, indent=2, default=str))
    return {"contents": [contents.model_dump(exclude_none=True)]}


class ResourcesListHandler(BaseHandler):
    method = MCPMethod.RESOURCES_LIST
    params_model = PaginatedParams

    def __init__(self, page_size: int = 50):
        super().__init__()
        self.page_size = page_size

    async def execute(self, params: PaginatedParams, context: RequestContext) -> Dict[str, Any]:
        resources = [resource.model_dump(exclude_none=True) for resource in RESOURCES]
        return page_result("resources", resources, params.cursor, self.page_size)


class ResourceTemplatesListHandler(BaseHandler):
    method = MCPMethod.RESOURCES_TEMPLATES_LIST
    params_model = PaginatedParams

    def __init__(self, page_size: int = 50):
        super().__init__()
        self.page_size = page_size

    async def execute(self, params: PaginatedParams, context: RequestContext) -> Dict[str, Any]:
        templates = [template.model_dump(exclude_none=True) for template in RESOURCE_TEMPLATES]
        return page_result("resourceTemplates", templates, params.cursor, self.page_size)


class ResourcesReadHandler(BaseHandler):
    """Reads collections, single records, the summary and search results."""

    method = MCPMethod.RESOURCES_READ
    params_model = ResourceUriParams

    def __init__(self, service: CareerDataService):
        super().__init__()
        self.service = service

    async def execute(self, params: ResourceUriParams, context: RequestContext) -> Dict[str, Any]:
        self.logger.info("Reading resource", uri=params.uri, transport_id=context.transport_id)
        resource_type, rest = parse_resource_uri(params.uri)

        try:
            if resource_type == "career-summary":
                return await self._read_summary()
            if resource_type == "search":
                if not rest or not rest[0]:
                    raise InvalidParamsError(
                        "Search query required",
                        [{"field": "uri", "type": "missing", "message": "Search query required"}],
                    )
                return await self._read_search(unquote(rest[0]))
            if rest and rest[0]:
                return await self._read_record(resource_type, rest[0])
            return await self._read_collection(resource_type)

        except RecordNotFoundError as e:
            raise ResourceNotFoundError(str(e))
        except SourceNotConfiguredError as e:
            raise InternalError(str(e))
        except DataProviderError as e:
            raise InternalError(f"Failed to read resource: {e}")

    async def _read_collection(self, source_id: str) -> Dict[str, Any]:
        records = await self.service.records(source_id)
        return _json_contents(
            f"{SCHEME}{source_id}",
            {
                source_id: records,
                "total": len(records),
                "last_updated": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def _read_record(self, source_id: str, record_id: str) -> Dict[str, Any]:
        record = await self.service.record(source_id, record_id)
        return _json_contents(f"{SCHEME}{source_id}/{record_id}", record)

    async def _read_summary(self) -> Dict[str, Any]:
        text = await self.service.summary()
        contents = ResourceContents(uri=f"{SCHEME}career-summary", mimeType=MARKDOWN_MIME, text=text)
        return {"contents": [contents.model_dump(exclude_none=True)]}

    async def _read_search(self, query: str) -> Dict[str, Any]:
        results = await self.service.search(query, limit=SEARCH_RESOURCE_LIMIT)
        return _json_contents(f"{SCHEME}search/{quote(query, safe='')}", results)


class ResourcesSubscribeHandler(BaseHandler):
    method = MCPMethod.RESOURCES_SUBSCRIBE
    params_model = ResourceUriParams

    async def execute(self, params: ResourceUriParams, context: RequestContext) -> Dict[str, Any]:
        parse_resource_uri(params.uri)
        context.session.subscriptions.add(params.uri)
        self.logger.info("Subscribed to resource", uri=params.uri, transport_id=context.transport_id)
        return {}


class ResourcesUnsubscribeHandler(BaseHandler):
    method = MCPMethod.RESOURCES_UNSUBSCRIBE
    params_model = ResourceUriParams

    async def execute(self, params: ResourceUriParams, context: RequestContext) -> Dict[str, Any]:
        context.session.subscriptions.discard(params.uri)
        self.logger.info("Unsubscribed from resource", uri=params.uri, transport_id=context.transport_id)
        return {}
