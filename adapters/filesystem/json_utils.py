from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel

DUMP_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    msg = f"Type is not JSON serializable: {type(value).__name__}"
    raise TypeError(msg)


def parse_json_object(content: bytes | str) -> dict[str, Any]:
    data = orjson.loads(content)
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise ValueError(msg)
    return data


def load_json_object(path: Path) -> dict[str, Any]:
    return parse_json_object(path.read_bytes())


def dump_json_bytes(payload: Any) -> bytes:
    return orjson.dumps(payload, default=_default, option=DUMP_OPTIONS)


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(dump_json_bytes(payload))
    tmp_path.replace(path)
