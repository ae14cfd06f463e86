"""Encoding of node and edge property maps for storage as a single string."""

import json
from typing import Any

from graph_extractor.storage.exceptions import PropertySerializationError


def encode_properties(properties: dict[str, Any], owner_id: str | None = None) -> str:
    """Serialize a property map to a JSON object string.

    Raises:
        PropertySerializationError: If the map holds values JSON cannot represent.
    """
    if not isinstance(properties, dict):
        raise PropertySerializationError(
            f"Properties must be a mapping, got {type(properties).__name__}", owner_id
        )
    try:
        return json.dumps(properties, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise PropertySerializationError(f"Cannot encode properties: {e}", owner_id) from e


def decode_properties(payload: str | None, owner_id: str | None = None) -> dict[str, Any]:
    """Parse a stored property string back into a map.

    A missing payload decodes to an empty map.

    Raises:
        PropertySerializationError: If the payload is not a JSON object.
    """
    if payload is None:
        return {}
    try:
        value = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise PropertySerializationError(f"Cannot decode properties: {e}", owner_id) from e
    if not isinstance(value, dict):
        raise PropertySerializationError(
            f"Stored properties are not an object: {type(value).__name__}", owner_id
        )
    return value
