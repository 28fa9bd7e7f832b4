"""Hierarchy definitions and the selection chain controller (no I/O)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from app.schemas.options import OptionItem
from app.services.option_types import OptionKind, normalize_type_key, scope_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelSpec:
    name: str
    kind: OptionKind | None = None
    requires_parent: bool = False
    # Tag is scope_key(kind, parent.value) instead of the plain kind (AREA_<CITY_CODE>)
    scoped_by_parent_code: bool = False
    # Plain tag for custom flat types that have no OptionKind
    custom_tag: str | None = None

    def type_tag(self, parent: OptionItem | None) -> str | None:
        """Tag to list under `parent`; None when the level cannot be listed without one."""
        if self.custom_tag:
            return self.custom_tag
        if self.scoped_by_parent_code:
            return scope_key(self.kind, parent.value) if parent is not None else None
        return self.kind.value


@dataclass(frozen=True)
class Hierarchy:
    name: str
    levels: tuple[LevelSpec, ...]

    def __len__(self) -> int:
        return len(self.levels)


CURRICULUM = Hierarchy(
    "curriculum",
    (
        LevelSpec("Board", OptionKind.BOARD),
        LevelSpec("Grade", OptionKind.GRADE, requires_parent=True),
        LevelSpec("Subject", OptionKind.SUBJECT, requires_parent=True),
        LevelSpec("Chapter", OptionKind.CHAPTER, requires_parent=True),
    ),
)

LOCATION = Hierarchy(
    "location",
    (
        LevelSpec("City", OptionKind.CITY),
        LevelSpec("Area", OptionKind.AREA, requires_parent=True, scoped_by_parent_code=True),
    ),
)


def flat_hierarchy(type_key: str) -> Hierarchy:
    """Single root level for flat option types (MODE, GENDER, custom keys)."""
    tag = normalize_type_key(type_key)
    if not tag:
        raise ValueError("Option type key is required")
    try:
        level = LevelSpec(tag.title(), OptionKind(tag))
    except ValueError:
        level = LevelSpec(tag.title(), custom_tag=tag)
    return Hierarchy(tag.lower(), (level,))


class HierarchyController:
    """Ordered chain of selections, one slot per level.

    Selecting at level i clears every level after i. Listeners get the lowest
    index whose selection changed.
    """

    def __init__(self, hierarchy: Hierarchy):
        self.hierarchy = hierarchy
        self._selected: list[OptionItem | None] = [None] * len(hierarchy)
        self._listeners: list[Callable[[int], None]] = []

    def __len__(self) -> int:
        return len(self._selected)

    def subscribe(self, callback: Callable[[int], None]) -> None:
        self._listeners.append(callback)

    def _notify(self, index: int) -> None:
        for cb in list(self._listeners):
            cb(index)

    def _check(self, level_index: int) -> None:
        if not 0 <= level_index < len(self._selected):
            raise IndexError(f"Level {level_index} out of range for {self.hierarchy.name}")

    def select_at(self, level_index: int, item: OptionItem) -> None:
        self._check(level_index)
        self._selected[level_index] = item
        for j in range(level_index + 1, len(self._selected)):
            self._selected[j] = None
        logger.debug("%s: selected %s at %s", self.hierarchy.name, item.id, self.hierarchy.levels[level_index].name)
        self._notify(level_index)

    def clear_from(self, level_index: int) -> None:
        self._check(level_index)
        for j in range(level_index, len(self._selected)):
            self._selected[j] = None
        self._notify(level_index)

    def reset(self) -> None:
        self._selected = [None] * len(self._selected)
        self._notify(0)

    def selected(self, level_index: int) -> OptionItem | None:
        self._check(level_index)
        return self._selected[level_index]

    def selected_id(self, level_index: int) -> str | None:
        item = self.selected(level_index)
        return item.id if item is not None else None

    def parent_for(self, level_index: int) -> OptionItem | None:
        self._check(level_index)
        return self._selected[level_index - 1] if level_index > 0 else None

    def chain(self) -> list[tuple[str, str | None]]:
        return [
            (level.name, item.id if item is not None else None)
            for level, item in zip(self.hierarchy.levels, self._selected)
        ]
