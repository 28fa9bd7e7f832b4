"""One column of the hierarchy editor: the items of one level under the selected parent.

The column never edits its list in place. After every successful create, update
or delete it fetches the level again, so the list always reflects the backend.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from app.config import get_settings
from app.schemas.options import OptionItem, OptionPayload
from app.services.errors import ColumnBusy, MutationFailed, RepositoryError, ValidationFailed
from app.services.escalation import ConfirmationPrompt, DeletionEscalation, EscalationState
from app.services.hierarchy import HierarchyController, LevelSpec
from app.services.option_types import OptionKind, derive_value
from app.services.options_repository import OptionsRepository

logger = logging.getLogger(__name__)

WHATSAPP_LINK_KEY = "whatsappLink"


def _scope_id(parent: OptionItem | None) -> str | None:
    return parent.id if parent is not None else None


@dataclass
class Notice:
    message: str
    severity: str = "info"  # success | error | info | warning


@dataclass
class OptionForm:
    """Inline add/edit form. `editing` is None while adding."""
    editing: OptionItem | None = None
    label: str = ""
    value: str = ""
    sort_order: int = 0
    whatsapp_link: str = ""
    extra_metadata: dict[str, Any] = field(default_factory=dict)


class LevelColumn:
    def __init__(
        self,
        spec: LevelSpec,
        level_index: int,
        repository: OptionsRepository,
        controller: HierarchyController | None = None,
        delete_steps: int | None = None,
        child_level_name: str | None = None,
    ):
        self.spec = spec
        self.level_index = level_index
        self.repository = repository
        self.controller = controller

        self.items: list[OptionItem] = []
        self.parent: OptionItem | None = None
        self.loading = False
        self.error: str | None = None
        self.saving = False
        self.deleting = False
        self.notice: Notice | None = None
        self.form = OptionForm()

        self.on_selected: list[Callable[[OptionItem], Awaitable[None]]] = []
        self.on_saved: list[Callable[[OptionItem, bool], Awaitable[None]]] = []
        self.on_deleted: list[Callable[[OptionItem], Awaitable[None]]] = []

        # Serialises this column's own fetches and mutations
        self._lock = asyncio.Lock()
        self._generation = 0

        steps = delete_steps if delete_steps is not None else get_settings().hierarchy_delete_confirm_steps
        self.escalation = DeletionEscalation(self._delete_target, steps=steps, child_level_name=child_level_name)

    def __repr__(self) -> str:
        return f"<LevelColumn {self.spec.name} [{self.level_index}] items={len(self.items)}>"

    @property
    def type_tag(self) -> str | None:
        return self.spec.type_tag(self.parent)

    @property
    def scope_parent_id(self) -> str | None:
        """Parent id attached to listed and saved items; None for root levels."""
        if not self.spec.requires_parent or self.parent is None:
            return None
        return self.parent.id

    @property
    def can_list(self) -> bool:
        if self.spec.requires_parent and self.parent is None:
            return False
        return self.type_tag is not None

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    # ----- Loading -----

    async def load(self, parent: OptionItem | None = None) -> list[OptionItem]:
        """Fetch this level under `parent`.

        A level that requires a parent and has none shows nothing and makes no
        call. On failure `error` is set and the previous items stay.
        """
        parent = parent if self.spec.requires_parent else None
        if _scope_id(parent) != _scope_id(self.parent):
            self._drop_scoped_state()
        self.parent = parent
        gen = self._next_generation()
        async with self._lock:
            return await self._fetch(gen)

    async def refresh(self) -> list[OptionItem]:
        return await self.load(self.parent)

    def blank(self) -> None:
        """Parent was unset upstream: drop scope and items, ignore any fetch still in flight."""
        self._next_generation()
        self._drop_scoped_state()
        self.parent = None
        self.items = []
        self.error = None
        self.loading = False

    def _drop_scoped_state(self) -> None:
        # Form and delete dialog belong to the previous scope
        self.form = OptionForm()
        if self.escalation.state == EscalationState.CONFIRMING:
            self.escalation.cancel()

    async def _fetch(self, gen: int) -> list[OptionItem]:
        if not self.can_list:
            if gen == self._generation:
                self.items = []
                self.error = None
            return []

        tag = self.type_tag
        self.loading = True
        try:
            items = await self.repository.list_options(tag, self.scope_parent_id)
        except RepositoryError as e:
            logger.warning("Loading %s (%s) failed: %s", self.spec.name, tag, e.message)
            if gen == self._generation:
                self.error = e.message or "Failed to load options"
            return self.items
        finally:
            if gen == self._generation:
                self.loading = False

        if gen != self._generation:
            logger.debug("Discarding stale %s response for %s", self.spec.name, tag)
            return self.items
        self.items = items
        self.error = None
        return items

    # ----- Inline form -----

    def start_create(self) -> OptionForm:
        self.form = OptionForm(sort_order=len(self.items) + 1 if self.items else 0)
        return self.form

    def start_edit(self, item: OptionItem) -> OptionForm:
        meta = dict(item.metadata or {})
        link = meta.pop(WHATSAPP_LINK_KEY, "") or ""
        self.form = OptionForm(
            editing=item,
            label=item.label,
            value=item.value,
            sort_order=item.sort_order,
            whatsapp_link=link,
            extra_metadata=meta,
        )
        return self.form

    def cancel_edit(self) -> None:
        self.form = OptionForm()

    async def save(self) -> OptionItem:
        """Submit the inline form (create or update)."""
        f = self.form
        metadata = dict(f.extra_metadata)
        if f.whatsapp_link:
            metadata[WHATSAPP_LINK_KEY] = f.whatsapp_link
        option_id = f.editing.id if f.editing is not None else None
        return await self._save(option_id, f.label, metadata, value=f.value, sort_order=f.sort_order)

    # ----- Mutations -----

    async def create(
        self,
        label: str,
        metadata_input: dict[str, Any] | None = None,
        value: str | None = None,
        sort_order: int | None = None,
    ) -> OptionItem:
        return await self._save(None, label, metadata_input, value=value, sort_order=sort_order)

    async def update(
        self,
        option_id: str,
        label: str,
        metadata_input: dict[str, Any] | None = None,
        value: str | None = None,
        sort_order: int | None = None,
    ) -> OptionItem:
        return await self._save(option_id, label, metadata_input, value=value, sort_order=sort_order)

    def _build_metadata(self, metadata_input: dict[str, Any] | None) -> dict[str, Any] | None:
        metadata = dict(metadata_input or {})
        if self.spec.kind == OptionKind.CITY:
            link = str(metadata.get(WHATSAPP_LINK_KEY) or "").strip()
            if link:
                metadata[WHATSAPP_LINK_KEY] = link
            else:
                metadata.pop(WHATSAPP_LINK_KEY, None)
            # Always sent for cities so a cleared link is cleared on the backend too
            return metadata
        return metadata or None

    def _build_payload(
        self,
        label: str,
        metadata_input: dict[str, Any] | None,
        value: str | None,
        sort_order: int | None,
    ) -> OptionPayload:
        label = (label or "").strip()
        if not label:
            self.notice = Notice("Label is required", "warning")
            raise ValidationFailed("Label is required")
        if not self.can_list:
            message = "Select a parent item first"
            self.notice = Notice(message, "warning")
            raise ValidationFailed(message)
        return OptionPayload(
            type=self.type_tag,
            label=label,
            value=(value or "").strip() or derive_value(label),
            parent=self.scope_parent_id,
            metadata=self._build_metadata(metadata_input),
            sort_order=sort_order or None,
        )

    async def _save(
        self,
        option_id: str | None,
        label: str,
        metadata_input: dict[str, Any] | None,
        value: str | None = None,
        sort_order: int | None = None,
    ) -> OptionItem:
        payload = self._build_payload(label, metadata_input, value, sort_order)
        if self.saving:
            raise ColumnBusy("A save is already in progress")
        self.saving = True
        try:
            async with self._lock:
                try:
                    saved = await self.repository.upsert_option(option_id, payload)
                except RepositoryError as e:
                    message = e.message or "Failed to save option"
                    logger.warning("Saving %s %r failed: %s", self.spec.name, payload.label, message)
                    self.notice = Notice(message, "error")
                    raise MutationFailed(message) from e
                self.form = OptionForm()
                self.notice = Notice("Option updated" if option_id else "Option created", "success")
                await self._fetch(self._next_generation())
        finally:
            self.saving = False
        for cb in list(self.on_saved):
            await cb(saved, option_id is not None)
        return saved

    def request_delete(self, item: OptionItem) -> ConfirmationPrompt:
        """Open the delete confirmation for `item`; the call happens on the last confirm."""
        if self.deleting:
            raise ColumnBusy("A delete is already in progress")
        return self.escalation.request(item)

    def remove(self, option_id: str) -> ConfirmationPrompt:
        for item in self.items:
            if item.id == option_id:
                return self.request_delete(item)
        raise ValidationFailed(f"Option {option_id} is not listed in {self.spec.name}")

    async def _delete_target(self, item: OptionItem) -> None:
        if self.deleting:
            raise ColumnBusy("A delete is already in progress")
        self.deleting = True
        try:
            async with self._lock:
                try:
                    await self.repository.delete_option(item.id)
                except RepositoryError as e:
                    message = e.message or "Failed to delete option"
                    logger.warning("Deleting %s %r failed: %s", self.spec.name, item.label, message)
                    self.notice = Notice(message, "error")
                    raise MutationFailed(message) from e
                self.notice = Notice("Option deleted", "success")
                await self._fetch(self._next_generation())
        finally:
            self.deleting = False
        for cb in list(self.on_deleted):
            await cb(item)

    # ----- Selection -----

    async def select(self, item: OptionItem) -> None:
        if self.controller is not None:
            self.controller.select_at(self.level_index, item)
        for cb in list(self.on_selected):
            await cb(item)
