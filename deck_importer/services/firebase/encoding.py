"""Conversion between Python values and Firestore REST ``Value`` objects."""

import base64
import secrets
import string
from datetime import datetime
from typing import Any

AUTO_ID_ALPHABET = string.ascii_letters + string.digits
AUTO_ID_LENGTH = 20


class _ServerTimestamp:
    """Sentinel replaced by the commit time on the server."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def new_document_id() -> str:
    """Generate a document id the way the Firestore client SDKs do."""
    return "".join(secrets.choice(AUTO_ID_ALPHABET) for _ in range(AUTO_ID_LENGTH))


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore ``Value``.

    Raises:
        TypeError: If the value has no Firestore representation.
    """
    if value is None:
        return {"nullValue": None}
    # bool is a subclass of int
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {key: encode_value(item) for key, item in value.items()}}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_document(data: dict[str, Any]) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Split document data into encoded fields and field transforms.

    Top-level ``SERVER_TIMESTAMP`` values become ``REQUEST_TIME`` transforms.

    Returns:
        Tuple of (fields, update_transforms).
    """
    fields: dict[str, Any] = {}
    transforms: list[dict[str, Any]] = []

    for key, value in data.items():
        if value is SERVER_TIMESTAMP:
            transforms.append({"fieldPath": _quote_field_path(key), "setToServerValue": "REQUEST_TIME"})
        else:
            fields[key] = encode_value(value)

    return fields, transforms


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore ``Value`` into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "timestampValue" in value:
        return datetime.fromisoformat(value["timestampValue"].replace("Z", "+00:00"))
    if "referenceValue" in value:
        return value["referenceValue"]
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return {key: decode_value(item) for key, item in value["mapValue"].get("fields", {}).items()}
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_document(document: dict[str, Any]) -> dict[str, Any]:
    """Decode a Firestore ``Document`` into its data plus an ``id`` key."""
    data = {key: decode_value(item) for key, item in document.get("fields", {}).items()}
    data["id"] = document["name"].rsplit("/", 1)[-1]
    return data


def _quote_field_path(key: str) -> str:
    """Quote a field name that is not a simple identifier."""
    if key and (key[0].isalpha() or key[0] == "_") and all(c.isalnum() or c == "_" for c in key):
        return key
    escaped = key.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"
