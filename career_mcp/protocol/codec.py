"""Validation of raw transport payloads into JSON-RPC messages."""

import json
from typing import Any, Dict, Optional, Union

from .errors import InvalidRequestError, ParseError
from .messages import (
    JSONRPC_VERSION,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    RequestId,
)

InboundMessage = Union[JSONRPCRequest, JSONRPCNotification]
OutboundMessage = Union[JSONRPCResponse, JSONRPCNotification, Dict[str, Any]]


def _valid_id(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int, float))


def extract_request_id(payload: Any) -> Optional[RequestId]:
    """Best-effort id recovery from a payload that failed validation."""
    if isinstance(payload, dict) and _valid_id(payload.get("id")):
        return payload.get("id")
    return None


def parse_message(payload: Any) -> InboundMessage:
    """Validate an already deserialized payload.

    Returns a request when the payload carries an ``id`` key and a
    notification otherwise.
    """
    if payload is None or not isinstance(payload, dict):
        raise InvalidRequestError("Message must be a valid JSON object")

    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError("Invalid JSON-RPC version")

    method = payload.get("method")
    if not method or not isinstance(method, str):
        raise InvalidRequestError("Missing or invalid method field")

    params = payload.get("params")
    if params is not None and not isinstance(params, dict):
        raise InvalidRequestError("Params must be a JSON object")

    if "id" in payload:
        if not _valid_id(payload["id"]):
            raise InvalidRequestError("Request id must be a string, number or null")
        return JSONRPCRequest(
            jsonrpc=payload["jsonrpc"], id=payload["id"], method=method, params=params
        )

    return JSONRPCNotification(jsonrpc=payload["jsonrpc"], method=method, params=params)


def decode_message(raw: Union[str, bytes]) -> InboundMessage:
    """Decode one JSON text (a frame or a line) and validate it."""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        payload = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise ParseError(f"Invalid JSON message: {e}")
    return parse_message(payload)


def encode_message(message: OutboundMessage) -> str:
    """Serialize an outbound response or notification."""
    if isinstance(message, (JSONRPCResponse, JSONRPCNotification)):
        message = message.to_wire()
    return json.dumps(message, separators=(",", ":"), default=str)
