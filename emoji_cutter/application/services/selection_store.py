"""Selection store - the editable working set with undo/redo.

The store assumes a single writer. Every mutation records its history entry
before returning, so history order always matches mutation order.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from ...config import DEFAULTS
from ...domain.entities.region import RegionType, SegmentationRegion, SelectionMode, SelectionRegion
from ...domain.services.history import ActionType, SelectionHistory, snapshot
from ...domain.services.selection import validate_polygon
from ...domain.value_objects.geometry import bounding_box_of
from ...exceptions import DegenerateRegionError, InvalidPolygonError

logger = logging.getLogger(__name__)


class SelectionStore:
    """Ordered selections, the active id and the drawing mode."""

    def __init__(self, max_history_size: int = DEFAULTS.max_history_size):
        self._max_history_size = max_history_size
        self.reset()

    # -- queries -----------------------------------------------------------

    @property
    def selections(self) -> list[SelectionRegion]:
        """Detached copies of the current selections."""
        return list(snapshot(self._selections))

    @property
    def active_selection_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_selection(self) -> Optional[SelectionRegion]:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    @property
    def mode(self) -> SelectionMode:
        return self._mode

    @property
    def history(self) -> SelectionHistory:
        return self._history

    @property
    def count(self) -> int:
        return len(self._selections)

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def get(self, selection_id: str) -> Optional[SelectionRegion]:
        index = self._index_of(selection_id)
        return None if index is None else self._selections[index].clone()

    def _index_of(self, selection_id: str) -> Optional[int]:
        for i, s in enumerate(self._selections):
            if s.id == selection_id:
                return i
        return None

    # -- mutations ---------------------------------------------------------

    @staticmethod
    def _check_geometry(selection: SelectionRegion) -> None:
        if selection.bounding_box.is_degenerate:
            raise DegenerateRegionError(f"Selection {selection.id} has an empty bounding box")
        if selection.type == RegionType.POLYGON:
            if selection.polygon is None:
                raise InvalidPolygonError(f"Polygon selection {selection.id} has no vertices", reason="not_closed")
            result = validate_polygon(selection.polygon)
            if not result.valid:
                raise InvalidPolygonError(
                    f"Polygon selection {selection.id} is not usable", reason=result.error.value
                )

    @staticmethod
    def _fit_geometry(selection: SelectionRegion) -> SelectionRegion:
        """Derive a polygon's box from its vertices; rectangles carry no polygon."""
        if selection.type == RegionType.POLYGON:
            if selection.polygon is None:
                return selection
            return replace(selection, bounding_box=bounding_box_of(selection.polygon))
        return replace(selection, polygon=None)

    def _commit(self, action_type: ActionType, new_selections: list[SelectionRegion]) -> None:
        self._history.push(action_type, self._selections, new_selections)
        self._selections = new_selections

    def add(self, selection: SelectionRegion) -> str:
        """Append a selection and make it active.

        Raises:
            InvalidPolygonError: If a polygon selection fails validation
            DegenerateRegionError: If the bounding box has no area
        """
        added = replace(self._fit_geometry(selection), is_selected=False)
        self._check_geometry(added)
        self._commit(ActionType.ADD, self._selections + [added])
        self._active_id = added.id
        logger.debug(f"Added selection {added.id} ({added.type.value})")
        return added.id

    def load_regions(self, regions: Iterable[SegmentationRegion]) -> list[str]:
        """Append detected regions as one undoable step."""
        added = [r.to_selection() for r in regions]
        if not added:
            return []
        self._commit(ActionType.ADD, self._selections + added)
        self._active_id = None
        return [s.id for s in added]

    def remove(self, selection_id: str) -> bool:
        index = self._index_of(selection_id)
        if index is None:
            return False
        new_selections = self._selections[:index] + self._selections[index + 1:]
        self._commit(ActionType.REMOVE, new_selections)
        if self._active_id == selection_id:
            self._active_id = None
        return True

    def update(self, selection_id: str, **changes) -> bool:
        """Change fields of one selection; its id cannot change.

        A polygon's box always follows its vertices. Passing only
        ``bounding_box`` for a polygon stretches the vertices into that box.

        Raises:
            InvalidPolygonError: If the edited polygon fails validation
            DegenerateRegionError: If the edited box has no area
        """
        index = self._index_of(selection_id)
        if index is None:
            return False
        changes.pop("id", None)
        current = self._selections[index]
        if "bounding_box" in changes and "polygon" not in changes and current.is_polygon:
            changes["polygon"] = current.polygon.rescale(current.bounding_box, changes["bounding_box"])
        updated = self._fit_geometry(replace(current, **changes))
        self._check_geometry(updated)
        new_selections = list(self._selections)
        new_selections[index] = updated
        self._commit(ActionType.MODIFY, new_selections)
        return True

    def replace(self, selection: SelectionRegion) -> bool:
        """Store the result of a geometry edit for the selection with the same id."""
        return self.update(
            selection.id,
            type=selection.type,
            bounding_box=selection.bounding_box,
            polygon=selection.polygon,
        )

    def set_active(self, selection_id: Optional[str]) -> None:
        self._active_id = selection_id

    def toggle_selected(self, selection_id: str, multi_select: bool = False) -> None:
        """Select a selection; with ``multi_select`` toggle it and keep the others."""
        new_selections = []
        for s in self._selections:
            if s.id == selection_id:
                s = replace(s, is_selected=not s.is_selected if multi_select else True)
            elif not multi_select:
                s = replace(s, is_selected=False)
            new_selections.append(s)
        self._selections = new_selections
        self._active_id = selection_id

    def set_mode(self, mode: SelectionMode) -> None:
        self._mode = SelectionMode(mode)

    def undo(self) -> bool:
        state = self._history.undo()
        if state is None:
            return False
        self._selections = state
        self._active_id = None
        return True

    def redo(self) -> bool:
        state = self._history.redo()
        if state is None:
            return False
        self._selections = state
        self._active_id = None
        return True

    def clear_all(self) -> None:
        if not self._selections:
            return
        self._commit(ActionType.CLEAR, [])
        self._active_id = None

    def reset(self) -> None:
        """Drop selections and history, back to rectangle mode."""
        self._selections: list[SelectionRegion] = []
        self._active_id: Optional[str] = None
        self._mode = SelectionMode.RECTANGLE
        self._history = SelectionHistory(self._max_history_size)

    def __len__(self) -> int:
        return len(self._selections)
