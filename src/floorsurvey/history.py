"""Bounded undo/redo over whole-document snapshots."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from .config import HISTORY_DEPTH
from .floorplan import FloorPlan


@dataclass(frozen=True)
class Snapshot:
    plan: FloorPlan
    selection: Tuple[str, ...] = field(default_factory=tuple)


class History:
    """Undo and redo stacks of :class:`Snapshot` values.

    Callers push the state *before* each committed edit.  Undo hands
    back the previous snapshot and parks *current* on the redo stack;
    redo does the reverse.  Pushing a new snapshot drops all redo
    entries.  Only the most recent *depth* undo entries are kept.
    """

    def __init__(self, depth: int = HISTORY_DEPTH) -> None:
        if depth < 1:
            raise ValueError("depth must be >= 1")
        self.depth = depth
        self._past: Deque[Snapshot] = deque(maxlen=depth)
        self._future: list[Snapshot] = []

    def __len__(self) -> int:
        return len(self._past)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def push(self, snapshot: Snapshot) -> None:
        self._past.append(snapshot)
        self._future.clear()

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._past:
            return None
        self._future.append(current)
        return self._past.pop()

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._future:
            return None
        self._past.append(current)
        return self._future.pop()

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
