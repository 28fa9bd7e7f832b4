"""Options editor: a hierarchy controller wired to one LevelColumn per level."""
from __future__ import annotations

import functools
import logging

from app.schemas.options import OptionItem, OptionPayload, OptionTypeItem
from app.services.errors import FetchFailed, MutationFailed, RepositoryError, ValidationFailed
from app.services.hierarchy import CURRICULUM, Hierarchy, HierarchyController
from app.services.level_column import LevelColumn
from app.services.option_types import KNOWN_TYPES, OptionKind, derive_value, load_known_types, scope_key
from app.services.options_repository import OptionsRepository

logger = logging.getLogger(__name__)


class OptionsEditor:
    def __init__(
        self,
        repository: OptionsRepository,
        hierarchy: Hierarchy = CURRICULUM,
        delete_steps: int | None = None,
    ):
        self.repository = repository
        self.delete_steps = delete_steps
        self.known_types: list[OptionTypeItem] = list(KNOWN_TYPES)
        self._build(hierarchy)

    def _build(self, hierarchy: Hierarchy) -> None:
        self.hierarchy = hierarchy
        self.controller = HierarchyController(hierarchy)
        self.controller.subscribe(self._on_selection_changed)
        levels = hierarchy.levels
        self.columns: list[LevelColumn] = []
        for i, spec in enumerate(levels):
            column = LevelColumn(
                spec,
                i,
                self.repository,
                controller=self.controller,
                delete_steps=self.delete_steps,
                child_level_name=levels[i + 1].name if i + 1 < len(levels) else None,
            )
            column.on_selected.append(functools.partial(self._after_select, i))
            column.on_saved.append(functools.partial(self._after_save, i))
            column.on_deleted.append(functools.partial(self._after_delete, i))
            self.columns.append(column)

    def column(self, level_index: int) -> LevelColumn:
        return self.columns[level_index]

    def chain(self) -> list[tuple[str, str | None]]:
        return self.controller.chain()

    async def open(self) -> list[OptionItem]:
        for column in self.columns[1:]:
            column.blank()
        return await self.columns[0].load()

    async def switch_hierarchy(self, hierarchy: Hierarchy) -> list[OptionItem]:
        self.controller.reset()
        self._build(hierarchy)
        return await self.open()

    async def select(self, level_index: int, item: OptionItem) -> None:
        await self.columns[level_index].select(item)

    async def load_types(self) -> list[OptionTypeItem]:
        self.known_types = await load_known_types(self.repository)
        return self.known_types

    def _on_selection_changed(self, index: int) -> None:
        # Any level whose parent is now unset shows nothing
        for j in range(index + 1, len(self.columns)):
            if self.controller.parent_for(j) is None:
                self.columns[j].blank()

    async def _after_select(self, level_index: int, item: OptionItem) -> None:
        if level_index + 1 < len(self.columns):
            await self.columns[level_index + 1].load(item)

    async def _after_save(self, level_index: int, item: OptionItem, was_update: bool) -> None:
        if was_update and self.controller.selected_id(level_index) == item.id:
            # Label or code of a selected node changed; children are re-derived from the fresh record
            self.controller.select_at(level_index, item)
            await self._after_select(level_index, item)

    async def _after_delete(self, level_index: int, item: OptionItem) -> None:
        if self.controller.selected_id(level_index) == item.id:
            self.controller.clear_from(level_index)

    async def add_area_for_city(self, city_ref: str, label: str) -> OptionItem:
        """Add an area under a city picked by code or label, without typing AREA_ keys."""
        city_ref = (city_ref or "").strip()
        label = (label or "").strip()
        if not city_ref or not label:
            raise ValidationFailed("Please select a city and enter an area name")
        try:
            cities = await self.repository.list_options(OptionKind.CITY.value)
        except RepositoryError as e:
            raise FetchFailed(e.message) from e
        city = next((c for c in cities if c.value == city_ref or c.label == city_ref), None)
        if city is None:
            raise ValidationFailed("Selected city not found in options")

        payload = OptionPayload(
            type=scope_key(OptionKind.AREA, city.value),
            label=label,
            value=derive_value(label),
            parent=city.id,
        )
        try:
            area = await self.repository.upsert_option(None, payload)
        except RepositoryError as e:
            raise MutationFailed(e.message or "Failed to add area for city") from e
        logger.info("Area %s added for %s", area.value, city.label)

        for column in self.columns:
            if column.spec.kind == OptionKind.AREA and column.parent is not None and column.parent.id == city.id:
                await column.refresh()
        return area
