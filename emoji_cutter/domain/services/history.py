"""Bounded undo/redo log of selection-set snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ...config import DEFAULTS
from ..entities.region import SelectionRegion, now_ms

Snapshot = tuple[SelectionRegion, ...]


class ActionType(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"
    CLEAR = "clear"


def snapshot(selections: Iterable[SelectionRegion]) -> Snapshot:
    """Detached copy of a selection set."""
    return tuple(s.clone() for s in selections)


@dataclass(frozen=True, slots=True)
class SelectionAction:
    type: ActionType
    previous_state: Snapshot
    new_state: Snapshot
    timestamp: int = field(default_factory=now_ms)


class SelectionHistory:
    """Linear history with a cursor at the last applied action.

    Pushing while the cursor is behind the tail discards the redo branch.
    ``undo``/``redo`` only move the cursor; the log itself is untouched.
    """

    def __init__(self, max_size: int = DEFAULTS.max_history_size):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._actions: list[SelectionAction] = []
        self._index = -1

    def push(
        self,
        action_type: ActionType,
        previous_state: Iterable[SelectionRegion],
        new_state: Iterable[SelectionRegion]
    ) -> SelectionAction:
        action = SelectionAction(
            type=action_type,
            previous_state=snapshot(previous_state),
            new_state=snapshot(new_state),
        )
        del self._actions[self._index + 1:]
        self._actions.append(action)
        if len(self._actions) > self.max_size:
            del self._actions[0]
        self._index = len(self._actions) - 1
        return action

    def undo(self) -> Optional[list[SelectionRegion]]:
        """State before the current action, or None at the start."""
        if not self.can_undo:
            return None
        action = self._actions[self._index]
        self._index -= 1
        return list(snapshot(action.previous_state))

    def redo(self) -> Optional[list[SelectionRegion]]:
        """State after the next action, or None at the end."""
        if not self.can_redo:
            return None
        self._index += 1
        return list(snapshot(self._actions[self._index].new_state))

    @property
    def can_undo(self) -> bool:
        return self._index >= 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._actions) - 1

    @property
    def index(self) -> int:
        return self._index

    @property
    def actions(self) -> tuple[SelectionAction, ...]:
        return tuple(self._actions)

    def clear(self) -> None:
        self._actions.clear()
        self._index = -1

    def __len__(self) -> int:
        return len(self._actions)
