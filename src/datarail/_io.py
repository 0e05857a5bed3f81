from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import BaseModel

from ._bag import Bag
from ._failure import Failure
from ._failure import is_failure as default_is_failure

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._failure import FailurePredicate

logger = logging.getLogger(__name__)

# Key marking a TOML table as a serialized Failure marker
FAILURE_KEY = "__failure__"


def _serialize_value(value: Any, is_failure: FailurePredicate) -> Any:
    """Recursively serialize a bag value for TOML export, handling special types.

    Handles:
    - Failure markers: Converted to a table tagged with `__failure__ = true`
    - Pydantic BaseModel: Converts to dict via model_dump()
    - dict: Recursively serializes values
    - list/tuple: Recursively serializes items
    - Primitives and TOML-native types: Returns as-is
    """
    if is_failure(value):
        if isinstance(value, Failure):
            payload = value.model_dump(mode="python")
        else:
            payload = {"reason": str(value)}
        return {FAILURE_KEY: True, **_serialize_value(payload, is_failure)}

    # Use mode='python' to preserve datetime and Decimal, which TOML supports
    if isinstance(value, BaseModel):
        return _serialize_value(value.model_dump(mode="python"), is_failure)

    # Handle dict - recursively serialize values, excluding None (TOML doesn't support None)
    if isinstance(value, dict):
        return {str(k): _serialize_value(v, is_failure) for k, v in value.items() if v is not None}

    if isinstance(value, (list, tuple)):
        return [_serialize_value(item, is_failure) for item in value]

    if isinstance(value, Path):
        return str(value)

    return value


def _deserialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        if value.get(FAILURE_KEY) is True:
            payload = {k: v for k, v in value.items() if k != FAILURE_KEY}
            return Failure.model_validate(payload)
        return {k: _deserialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_deserialize_value(item) for item in value]
    return value


def bag_to_dict(bag: Mapping[str, Any], *, is_failure: FailurePredicate = default_is_failure) -> dict[str, Any]:
    """Convert a bag to a TOML-compatible dictionary.

    Values that are None are dropped, since TOML cannot represent them.
    """
    return {
        name: _serialize_value(value, is_failure)
        for name, value in bag.items()
        if value is not None
    }


def bag_from_dict(data: Mapping[str, Any]) -> Bag:
    """Build a bag from a dictionary, restoring serialized Failure markers."""
    return Bag({name: _deserialize_value(value) for name, value in data.items()})


def load_bag_from_toml(path: Path) -> Bag:
    """Load a value bag from a TOML file.

    Top-level keys become bag names. Tables tagged with `__failure__ = true`
    are read back as `Failure` values, so cells that failed on an earlier run
    are retried.
    """
    with path.open("rb") as f:
        data = tomllib.load(f)
    bag = bag_from_dict(data)
    logger.debug("Loaded %d values from %s", len(bag), path)
    return bag


def export_bag_to_toml(
    bag: Mapping[str, Any],
    path: Path,
    *,
    is_failure: FailurePredicate = default_is_failure,
) -> None:
    """Write a value bag to a TOML file, creating parent directories."""
    data = bag_to_dict(bag, is_failure=is_failure)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)
    logger.debug("Exported %d values to %s", len(data), path)
