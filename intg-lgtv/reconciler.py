"""Canonical attribute set of one TV session."""

import json
import logging
from enum import Enum
from typing import Any, Callable, Mapping

_LOG = logging.getLogger(__name__)


class Ignored(Enum):
    """Marker type for proposals that must leave the attribute untouched."""

    TOKEN = "@@IGNORED@@"


IGNORED = Ignored.TOKEN
"""Propose this value to signal "no applicable value, leave unchanged"."""

_MISSING = object()


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def values_equal(current: Any, proposed: Any) -> bool:
    """
    Compare two attribute values structurally.

    Scalars compare by value, with numbers and their string form treated as
    equal; composites compare deeply.
    """
    if current is _MISSING:
        return False
    if isinstance(current, bool) or isinstance(proposed, bool):
        return type(current) is type(proposed) and current == proposed
    if current == proposed:
        return True
    if isinstance(current, str) != isinstance(proposed, str):
        left, right = _as_number(current), _as_number(proposed)
        if left is not None and right is not None:
            return left == right
    if isinstance(current, (dict, list, tuple)):
        try:
            return json.dumps(current, sort_keys=True) == json.dumps(
                proposed, sort_keys=True
            )
        except (TypeError, ValueError):
            return False
    return False


def should_emit(current: Any, proposed: Any) -> bool:
    """Return True if proposed is a genuine change against current."""
    if proposed is IGNORED:
        return False
    return not values_equal(current, proposed)


class AttributeReconciler:
    """Diff proposed attributes against known values and emit real changes only."""

    def __init__(
        self, on_change: Callable[[dict[str, Any]], None], log_id: str = ""
    ) -> None:
        """
        Create instance.

        :param on_change: receives one dict of changed attributes per reconcile call
        :param log_id: prefix for log messages
        """
        self._values: dict[str, Any] = {}
        self._on_change = on_change
        self._log_id = log_id
        self._emitting = False
        self._deferred: list[dict[str, Any]] = []

    def get(self, key: str, default: Any = None) -> Any:
        """Return the last known value of an attribute."""
        return self._values.get(key, default)

    @property
    def values(self) -> dict[str, Any]:
        """Return a copy of the canonical attribute set."""
        return dict(self._values)

    def reconcile(self, proposed: Mapping[str, Any]) -> dict[str, Any]:
        """
        Apply proposed attribute values and notify the changed ones.

        A call made from within the change callback is applied once the running
        notification returns.

        :return: the attributes that changed
        """
        if self._emitting:
            self._deferred.append(dict(proposed))
            return {}

        changes = self._apply(proposed)
        pending = changes
        while True:
            if pending:
                self._emitting = True
                try:
                    self._on_change(pending)
                finally:
                    self._emitting = False
            if not self._deferred:
                return changes
            pending = self._apply(self._deferred.pop(0))

    def _apply(self, proposed: Mapping[str, Any]) -> dict[str, Any]:
        changes = {}
        for key, value in proposed.items():
            current = self._values.get(key, _MISSING)
            if not should_emit(current, value):
                continue
            _LOG.debug(
                "[%s] %s: %s => %s",
                self._log_id,
                key,
                None if current is _MISSING else current,
                value,
            )
            self._values[key] = value
            changes[key] = value
        return changes
