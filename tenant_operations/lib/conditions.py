"""Helpers for reading and writing status conditions.

Condition types are unique within a list; setting an existing type updates
it in place. lastTransitionTime only moves when the status changes.
"""

from datetime import UTC, datetime

from .models import Condition, ConditionStatus


def _now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def get(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition with the given type, or None."""
    for condition in conditions:
        if condition["type"] == condition_type:
            return condition
    return None


def has(conditions: list[Condition], condition_type: str) -> bool:
    return get(conditions, condition_type) is not None


def is_true(conditions: list[Condition], condition_type: str) -> bool:
    condition = get(conditions, condition_type)
    return condition is not None and condition["status"] == ConditionStatus.TRUE


def is_false(conditions: list[Condition], condition_type: str) -> bool:
    condition = get(conditions, condition_type)
    return condition is not None and condition["status"] == ConditionStatus.FALSE


def set_condition(
    conditions: list[Condition],
    condition_type: str,
    status: ConditionStatus,
    reason: str,
    message: str,
) -> None:
    """Insert or update a condition in place."""
    existing = get(conditions, condition_type)
    if existing is None:
        conditions.append(
            Condition(
                type=condition_type,
                status=str(status),
                reason=reason,
                message=message,
                lastTransitionTime=_now(),
            )
        )
        return

    if existing["status"] != status:
        existing["status"] = str(status)
        existing["lastTransitionTime"] = _now()
    existing["reason"] = reason
    existing["message"] = message


def mark_true(conditions: list[Condition], condition_type: str, reason: str, message: str) -> None:
    set_condition(conditions, condition_type, ConditionStatus.TRUE, reason, message)


def mark_false(conditions: list[Condition], condition_type: str, reason: str, message: str) -> None:
    set_condition(conditions, condition_type, ConditionStatus.FALSE, reason, message)
