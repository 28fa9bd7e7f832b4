"""Option type tags: the kind enum, scoped tags (AREA_<CITY_CODE>) and value derivation."""
from __future__ import annotations

import enum
import logging
import re

from app.schemas.options import OptionTypeItem
from app.services.errors import RepositoryError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class OptionKind(str, enum.Enum):
    BOARD = "BOARD"
    GRADE = "GRADE"
    SUBJECT = "SUBJECT"
    CHAPTER = "CHAPTER"
    CITY = "CITY"
    AREA = "AREA"
    MODE = "MODE"
    GENDER = "GENDER"


# Kinds whose stored tag carries the code of the scoping item (AREA_BHOPAL)
SCOPED_KINDS = frozenset({OptionKind.AREA})

# Static types shown before the backend answers (order matters for the picker)
KNOWN_TYPES: list[OptionTypeItem] = [
    OptionTypeItem(value=OptionKind.SUBJECT.value, label="Subjects"),
    OptionTypeItem(value=OptionKind.BOARD.value, label="Boards"),
    OptionTypeItem(value=OptionKind.CITY.value, label="Cities"),
    OptionTypeItem(value=OptionKind.MODE.value, label="Modes"),
    OptionTypeItem(value=OptionKind.GENDER.value, label="Genders"),
    OptionTypeItem(value=OptionKind.GRADE.value, label="Grades"),
    OptionTypeItem(value=OptionKind.CHAPTER.value, label="Chapters"),
    OptionTypeItem(value=OptionKind.AREA.value, label="Areas"),
]
_LABELS = {t.value: t.label for t in KNOWN_TYPES}


def derive_value(label: str) -> str:
    """Code for a label: trimmed, uppercased, whitespace runs replaced by underscores."""
    return _WHITESPACE.sub("_", (label or "").strip().upper())


def normalize_type_key(raw: str) -> str:
    return (raw or "").strip().upper()


def scope_key(kind: OptionKind, code: str) -> str:
    """Tag for items of a scoped kind under one parent code, e.g. scope_key(AREA, "BHOPAL") -> "AREA_BHOPAL"."""
    if kind not in SCOPED_KINDS:
        raise ValueError(f"{kind.value} is not a scoped option kind")
    code = derive_value(code)
    if not code:
        raise ValueError("Scope code is required")
    return f"{kind.value}_{code}"


def parse_type_tag(tag: str) -> tuple[OptionKind | None, str | None]:
    """Reverse of scope_key. Returns (kind, scope code); custom tags give (None, None)."""
    tag = normalize_type_key(tag)
    try:
        return OptionKind(tag), None
    except ValueError:
        pass
    for kind in SCOPED_KINDS:
        prefix = f"{kind.value}_"
        if tag.startswith(prefix) and len(tag) > len(prefix):
            return kind, tag[len(prefix):]
    return None, None


def type_label(tag: str) -> str:
    if tag in _LABELS:
        return _LABELS[tag]
    kind, scope = parse_type_tag(tag)
    if kind is not None and scope:
        return f"{_LABELS[kind.value]} ({scope})"
    return tag


def merge_types(known: list[OptionTypeItem], remote: list[OptionTypeItem]) -> list[OptionTypeItem]:
    """Static types first, then backend types not already listed."""
    existing = {t.value for t in known}
    merged = list(known)
    for t in remote:
        if t.value not in existing:
            merged.append(t)
            existing.add(t.value)
    return merged


async def load_known_types(repository) -> list[OptionTypeItem]:
    """Known types merged with the backend's; falls back to the static list when the backend fails."""
    try:
        remote = await repository.list_types()
    except RepositoryError as e:
        logger.warning("Could not load option types from backend, using static list: %s", e)
        return list(KNOWN_TYPES)
    return merge_types(KNOWN_TYPES, remote)
