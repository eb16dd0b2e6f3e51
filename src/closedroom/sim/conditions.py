from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class FlagEquals:
    key: str
    value: Any


@dataclass(frozen=True)
class UnsupportedCondition:
    """Condition kind this engine does not know; always passes."""

    kind: str


Condition = Union[FlagEquals, UnsupportedCondition]


def parse_condition(payload: Any) -> Condition | None:
    if payload is None:
        return None
    if not isinstance(payload, dict):
        logger.warning("ignoring non-object condition: %r", payload)
        return UnsupportedCondition(kind=type(payload).__name__)
    flag_equals = payload.get("flagEquals")
    if isinstance(flag_equals, dict) and isinstance(flag_equals.get("key"), str):
        return FlagEquals(key=flag_equals["key"], value=flag_equals.get("value"))
    kind = ",".join(sorted(str(key) for key in payload)) or "<empty>"
    logger.warning("unsupported condition %s evaluates to true", kind)
    return UnsupportedCondition(kind=kind)


def strict_equals(left: Any, right: Any) -> bool:
    """Typed equality: ``1 != "1"``, ``True != 1``, ``1 == 1.0``."""
    if left is _MISSING or right is _MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if left is None or right is None:
        return left is None and right is None
    return type(left) is type(right) and left == right


def evaluate(condition: Condition | None, flags: Mapping[str, Any]) -> bool:
    if condition is None:
        return True
    if isinstance(condition, FlagEquals):
        return strict_equals(flags.get(condition.key, _MISSING), condition.value)
    return True
