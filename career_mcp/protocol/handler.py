"""Per-method request pipeline and the method dispatcher."""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, Union
import structlog
from prometheus_client import Counter, Histogram
from pydantic import BaseModel, ValidationError

from .codec import extract_request_id, parse_message
from .errors import (
    HandlerRegistrationError,
    InitializationFailedError,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MCPError,
    MethodNotFoundError,
)
from .messages import (
    JSONRPC_VERSION,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MCPMethod,
)
from .session import RequestContext

logger = structlog.get_logger()

# Metrics
request_count = Counter("mcp_requests_total", "Total MCP requests", ["method", "status"])
stage_duration = Histogram(
    "mcp_request_stage_seconds", "Duration of each request pipeline stage", ["method", "stage"]
)

# Methods that stay reachable while a connection has not completed the handshake.
LIFECYCLE_METHODS = frozenset(
    {
        MCPMethod.INITIALIZE.value,
        MCPMethod.INITIALIZED.value,
        MCPMethod.NOTIFICATIONS_INITIALIZED.value,
        MCPMethod.PING.value,
    }
)

SENSITIVE_FIELDS = ("password", "token", "secret", "key", "authorization")


def sanitize_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of params with sensitive top-level fields redacted for logging."""
    if not params:
        return params
    return {
        name: "[REDACTED]" if any(word in name.lower() for word in SENSITIVE_FIELDS) else value
        for name, value in params.items()
    }


def violations_from(error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into a machine-readable violation list."""
    return [
        {
            "field": ".".join(str(part) for part in item["loc"]),
            "type": item["type"],
            "message": item["msg"],
        }
        for item in error.errors()
    ]


class BaseHandler(ABC):
    """Base class for all MCP method handlers.

    ``handle`` runs the four stages every request goes through: structural
    validation, parameter validation, execution and response shaping. It never
    raises; every failure becomes an error response echoing the request id.
    """

    method: MCPMethod
    params_model: Optional[Type[BaseModel]] = None

    def __init__(self):
        self.logger = logger.bind(handler=self.method.value)

    async def handle(
        self,
        request: Union[JSONRPCRequest, JSONRPCNotification],
        context: Optional[RequestContext] = None,
    ) -> JSONRPCResponse:
        context = context or RequestContext()
        request_id = getattr(request, "id", None)
        stage = "structure"
        started = time.perf_counter()
        stage_started = started

        def finish_stage(name: str) -> None:
            nonlocal stage_started
            now = time.perf_counter()
            stage_duration.labels(method=self.method.value, stage=name).observe(now - stage_started)
            stage_started = now

        self.logger.info(
            "Handling MCP request",
            request_id=request_id,
            transport_id=context.transport_id,
            params=sanitize_params(request.params),
        )

        try:
            self.validate_request(request)
            finish_stage(stage)

            stage = "params"
            params = self.validate_params(request.params)
            finish_stage(stage)

            stage = "execute"
            result = await self.execute(params, context)
            finish_stage(stage)

            response = JSONRPCResponse.success(request_id, result)
            request_count.labels(method=self.method.value, status="success").inc()
            self.logger.info(
                "MCP request completed successfully",
                request_id=request_id,
                duration=time.perf_counter() - started,
            )
            return response

        except MCPError as e:
            finish_stage(stage)
            request_count.labels(method=self.method.value, status="error").inc()
            self.logger.warning(
                "MCP request failed with known error",
                request_id=request_id,
                stage=stage,
                duration=time.perf_counter() - started,
                error_code=int(e.code),
                error_message=e.message,
            )
            return JSONRPCResponse.failure(request_id, e)

        except Exception as e:
            finish_stage(stage)
            request_count.labels(method=self.method.value, status="error").inc()
            self.logger.error(
                "MCP request failed with unexpected error",
                request_id=request_id,
                stage=stage,
                duration=time.perf_counter() - started,
                error=str(e),
                exc_info=True,
            )
            data = {"originalError": str(e)} if context.debug else None
            return JSONRPCResponse.failure(request_id, InternalError("Internal server error", data))

    def validate_request(self, request: Union[JSONRPCRequest, JSONRPCNotification]) -> None:
        """Validate basic request structure."""
        if request.jsonrpc != JSONRPC_VERSION:
            raise InvalidRequestError("Invalid JSON-RPC version")

        if not request.method:
            raise InvalidRequestError("Missing or invalid method field")

        if request.method != self.method.value:
            raise MethodNotFoundError(
                f"Expected method '{self.method.value}', got '{request.method}'"
            )

    def validate_params(self, params: Optional[Dict[str, Any]]) -> Any:
        """Validate method-specific parameters against ``params_model``."""
        if self.params_model is None:
            return params or {}

        try:
            return self.params_model.model_validate(params or {})
        except ValidationError as e:
            raise InvalidParamsError(
                f"Parameter validation failed for '{self.method.value}'",
                violations_from(e),
            )

    @abstractmethod
    async def execute(self, params: Any, context: RequestContext) -> Dict[str, Any]:
        """Method-specific logic; raise an ``MCPError`` for expected failures."""
        pass


class HandlerRegistry:
    """Maps method names to handlers and routes requests to them."""

    def __init__(self, require_initialization: bool = False, debug: bool = False):
        self._handlers: Dict[str, BaseHandler] = {}
        self.require_initialization = require_initialization
        self.debug = debug

    def register(self, handler: BaseHandler) -> None:
        """Bind a handler to its method; a second binding is fatal."""
        method = handler.method.value
        if method in self._handlers:
            raise HandlerRegistrationError(f"Handler for method '{method}' is already registered")

        self._handlers[method] = handler
        logger.debug("Registered request handler", method=method)

    def unregister(self, method: Union[str, MCPMethod]) -> bool:
        """Unregister the handler for a method."""
        if isinstance(method, MCPMethod):
            method = method.value
        removed = self._handlers.pop(method, None) is not None
        if removed:
            logger.debug("Unregistered handler", method=method)
        return removed

    def clear(self) -> bool:
        removed = bool(self._handlers)
        self._handlers.clear()
        logger.debug("All handlers cleared")
        return removed

    def get_handler(self, method: str) -> Optional[BaseHandler]:
        return self._handlers.get(method)

    def has_handler(self, method: str) -> bool:
        return method in self._handlers

    def get_registered_methods(self) -> List[str]:
        return list(self._handlers)

    def _context(self, context: Optional[RequestContext]) -> RequestContext:
        return context if context is not None else RequestContext(debug=self.debug)

    def _gate(self, method: str, context: RequestContext) -> None:
        if (
            self.require_initialization
            and method not in LIFECYCLE_METHODS
            and not context.session.is_initialized
        ):
            raise InitializationFailedError("Server not initialized")

    async def handle_request(
        self,
        request: Union[JSONRPCRequest, Dict[str, Any]],
        context: Optional[RequestContext] = None,
    ) -> JSONRPCResponse:
        """Route a request to its handler. Never raises."""
        if isinstance(request, dict):
            try:
                parsed = parse_message(request)
            except MCPError as e:
                return JSONRPCResponse.failure(extract_request_id(request), e)
            request = JSONRPCRequest(**parsed.model_dump())

        context = self._context(context)

        if request.jsonrpc != JSONRPC_VERSION:
            return JSONRPCResponse.failure(request.id, InvalidRequestError("Invalid JSON-RPC version"))

        handler = self._handlers.get(request.method)
        if handler is None:
            logger.warning("No handler found for method", method=request.method, request_id=request.id)
            return JSONRPCResponse.failure(
                request.id, MethodNotFoundError(f"Method '{request.method}' not found")
            )

        try:
            self._gate(request.method, context)
        except MCPError as e:
            logger.warning("Request rejected before initialization", method=request.method)
            return JSONRPCResponse.failure(request.id, e)

        return await handler.handle(request, context)

    async def handle_notification(
        self,
        notification: JSONRPCNotification,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Run the handler for a notification and discard its outcome."""
        handler = self._handlers.get(notification.method)
        if handler is None:
            logger.warning("No handler for notification", method=notification.method)
            return

        context = self._context(context)
        try:
            self._gate(notification.method, context)
        except MCPError:
            logger.warning("Notification ignored before initialization", method=notification.method)
            return

        response = await handler.handle(notification, context)
        if response.is_error:
            logger.warning(
                "Notification handler failed",
                method=notification.method,
                error_code=response.error.code,
                error_message=response.error.message,
            )
