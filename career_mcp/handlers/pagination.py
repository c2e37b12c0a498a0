"""Opaque offset cursors for the listing methods."""

import base64
import binascii
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..protocol.errors import InvalidParamsError


def encode_cursor(offset: int) -> str:
    return base64.urlsafe_b64encode(f"offset:{offset}".encode()).decode()


def decode_cursor(cursor: Optional[str]) -> int:
    """Offset a cursor points at; no cursor means the first page."""
    if cursor is None:
        return 0

    try:
        text = base64.urlsafe_b64decode(cursor.encode()).decode()
        prefix, _, value = text.partition(":")
        offset = int(value)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        offset = -1
        prefix = ""

    if prefix != "offset" or offset < 0:
        raise InvalidParamsError(
            "Invalid cursor",
            [{"field": "cursor", "type": "value_error", "message": "Cursor is not recognized"}],
        )
    return offset


def paginate(items: Sequence[Any], cursor: Optional[str], page_size: int) -> Tuple[List[Any], Optional[str]]:
    """One page of ``items`` and the cursor of the next page, if any."""
    offset = decode_cursor(cursor)
    page = list(items[offset:offset + page_size])
    next_offset = offset + page_size
    return page, encode_cursor(next_offset) if next_offset < len(items) else None


def page_result(key: str, items: Sequence[Any], cursor: Optional[str], page_size: int) -> Dict[str, Any]:
    page, next_cursor = paginate(items, cursor, page_size)
    result: Dict[str, Any] = {key: page}
    if next_cursor is not None:
        result["nextCursor"] = next_cursor
    return result
