"""In-memory canonical state store.

This is the only component allowed to merge normalized report patches.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bambulink._constants import BOOKKEEPING_KEYS, OPAQUE_KEYS
from bambulink.models.state import PrinterState
from bambulink.state.diff import diff_state
from bambulink.state.merge import merge_state
from bambulink.state.policy import is_duplicate_sequence

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StateChange:
    """Result of applying a patch that changed the reported state."""

    patch: dict[str, Any]
    """Minimal patch of reported fields (bookkeeping keys excluded)."""
    previous: dict[str, Any] | None
    current: dict[str, Any]


class PrinterStateStore:
    """Holds the canonical state of one printer.

    Deterministic: given the same sequence of patches it produces the same
    states and change patches.
    """

    def __init__(self) -> None:
        self._state: dict[str, Any] | None = None
        self._last_sequence_id: str | None = None

    @property
    def last_sequence_id(self) -> str | None:
        return self._last_sequence_id

    def current(self) -> dict[str, Any] | None:
        return self._state

    def snapshot(self) -> PrinterState | None:
        """Typed view of the current state, or ``None`` before the first report."""
        if self._state is None:
            return None
        return PrinterState.model_validate(self._state)

    def is_duplicate(self, sequence_id: str | None) -> bool:
        return is_duplicate_sequence(self._last_sequence_id, sequence_id)

    def apply(self, patch: Mapping[str, Any]) -> StateChange | None:
        """Merge a normalized patch.

        Returns the change when reported fields differ afterwards, ``None``
        when the patch is a duplicate or changes bookkeeping only.
        """
        sequence_id = patch.get("sequence_id")
        if self.is_duplicate(sequence_id):
            _logger.debug("Dropping duplicate report sequence_id=%s", sequence_id)
            return None

        previous = self._state
        current = merge_state(previous, patch, replace=OPAQUE_KEYS)
        self._state = current
        if sequence_id is not None:
            self._last_sequence_id = sequence_id

        change = diff_state(previous, current, exclude=BOOKKEEPING_KEYS)
        if change is None:
            return None
        _logger.debug("State changed keys=%s", sorted(change))
        return StateChange(patch=change, previous=previous, current=current)

    def reset(self) -> None:
        self._state = None
        self._last_sequence_id = None
