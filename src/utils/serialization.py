"""JSON helpers for tool results and protocol payloads."""

import dataclasses
import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class GatewayJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles models, dataclasses and common non-JSON types.

    Integers are written exactly as Python holds them, so amounts wider than
    64 bits keep every digit.
    """

    def default(self, obj: Any) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if hasattr(obj, "model_dump"):  # Pydantic v2
            return obj.model_dump(by_alias=True)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if isinstance(obj, bytes):
            return "0x" + obj.hex()
        return super().default(obj)


def dumps(obj: Any, indent: int | None = None) -> str:
    return json.dumps(obj, cls=GatewayJSONEncoder, indent=indent)


def to_jsonable(obj: Any) -> Any:
    """Round-trip obj through the encoder; raises TypeError/ValueError if it cannot be serialized."""
    return json.loads(dumps(obj))
