"""
Chat-history row normalisation.

The chat-history table is shared with other writers and its row shape has
drifted over time: the message may be a JSON string or an object, and role,
content and timestamp appear under several field names. All of that probing
happens here, once, so the rest of the agent sees a single ``Turn`` shape.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ..domain.entities import Turn, TurnRole

logger = logging.getLogger(__name__)

ROLE_FIELDS = ("type", "role", "sender_type")
CONTENT_FIELDS = ("content", "text", "body")
TIMESTAMP_FIELDS = ("created_at", "date_time", "createdAt", "timestamp")
MESSAGE_FIELDS = ("message", "data")

CUSTOMER_ROLES = {"human", "user", "customer"}
AGENT_ROLES = {"ai", "assistant", "agent", "bot", "operator"}


def _first(mapping: Mapping[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = mapping.get(name)
        if value is not None and value != "":
            return value
    return None


def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (str, bytes)):
        try:
            decoded = json.loads(value)
        except ValueError:
            return None
        if isinstance(decoded, Mapping):
            return decoded
    return None


def parse_role(value: Any) -> TurnRole:
    """Map a stored role label to a TurnRole.

    Unknown labels are treated as customer turns.
    """
    label = str(value or "").strip().lower()
    if label in AGENT_ROLES:
        return TurnRole.AGENT
    return TurnRole.CUSTOMER


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp into a naive UTC datetime.

    Accepts datetime objects, ISO-8601 strings (``Z`` suffix allowed) and
    epoch seconds or milliseconds.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_turn_row(row: Mapping[str, Any]) -> Optional[Turn]:
    """Convert one stored row to a Turn.

    Fields are looked up first in the embedded message payload (if any) and
    then on the row itself.

    Args:
        row: Row as a mapping (e.g. ``dict(asyncpg.Record)``)

    Returns:
        Turn, or None if the row has no usable content
    """
    payload = None
    for name in MESSAGE_FIELDS:
        if name in row:
            payload = _as_mapping(row[name])
            if payload is None and isinstance(row[name], str) and name == "message":
                # Plain-text message column
                payload = {"content": row[name]}
            if payload is not None:
                break

    sources = [m for m in (payload, row) if m is not None]

    content = None
    role_value = None
    timestamp_value = None
    for source in sources:
        content = content if content is not None else _first(source, CONTENT_FIELDS)
        role_value = role_value if role_value is not None else _first(source, ROLE_FIELDS)
        timestamp_value = (
            timestamp_value if timestamp_value is not None else _first(source, TIMESTAMP_FIELDS)
        )

    if not isinstance(content, str) or not content.strip():
        return None

    # Missing timestamps stay None; store order decides placement
    created_at = parse_timestamp(timestamp_value)
    return Turn(role=parse_role(role_value), content=content.strip(), created_at=created_at)
