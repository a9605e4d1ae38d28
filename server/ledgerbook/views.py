"""List view state shared by the journal, register and bill listings.

View state is a plain frozen value. Reducers return a new state and never
touch the data being listed; ``apply_view`` turns a collection plus a state
into one page of results.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Generic, Iterable, Literal, Mapping, Optional, TypeVar

from ledgerbook.ledger.calculations import EPOCH, to_day
from ledgerbook.utils import parse_money


logger = logging.getLogger(__name__)

T = TypeVar("T")
SortDirection = Literal["asc", "desc"]

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 1000


@dataclass(frozen=True)
class ListViewState:
    search: str = ""
    sort_field: str = "date"
    sort_direction: SortDirection = "desc"
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ListViewState":
        known = {key: data[key] for key in cls.__dataclass_fields__ if key in data}
        return normalize_state(cls(**known))

    @property
    def is_filtered(self) -> bool:
        return bool(self.search.strip())


def normalize_state(state: ListViewState) -> ListViewState:
    direction = state.sort_direction if state.sort_direction in ("asc", "desc") else "desc"
    per_page = min(max(int(state.per_page or DEFAULT_PER_PAGE), 1), MAX_PER_PAGE)
    return replace(
        state,
        search=state.search or "",
        sort_direction=direction,
        page=max(int(state.page or 1), 1),
        per_page=per_page,
    )


def with_search(state: ListViewState, search: Optional[str]) -> ListViewState:
    return replace(state, search=search or "", page=1)


def toggle_sort(state: ListViewState, field: str) -> ListViewState:
    if state.sort_field == field:
        direction = "asc" if state.sort_direction == "desc" else "desc"
        return replace(state, sort_direction=direction, page=1)
    return replace(state, sort_field=field, sort_direction="asc", page=1)


def with_page(state: ListViewState, page: int) -> ListViewState:
    return replace(state, page=max(page, 1))


def with_per_page(state: ListViewState, per_page: int) -> ListViewState:
    return normalize_state(replace(state, per_page=per_page, page=1))


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    per_page: int
    total_pages: int
    start: int
    end: int


def date_sort_key(value: Any) -> int:
    return (to_day(value) or EPOCH).toordinal()


def text_sort_key(value: Any) -> str:
    return str(value or "").lower()


def number_sort_key(value: Any):
    return parse_money(value)


def matches_search(term: str, fields: Iterable[Optional[str]]) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in (value or "").lower() for value in fields)


def apply_view(
    items: Iterable[T],
    state: ListViewState,
    *,
    search_fields: Callable[[T], Iterable[Optional[str]]],
    sort_keys: Mapping[str, Callable[[T], Any]],
) -> Page[T]:
    state = normalize_state(state)
    filtered = [item for item in items if matches_search(state.search, search_fields(item))]

    sort_key = sort_keys.get(state.sort_field)
    if sort_key is None:
        logger.debug("Ignoring unknown sort field %s", state.sort_field)
    else:
        filtered.sort(key=sort_key, reverse=state.sort_direction == "desc")

    total = len(filtered)
    total_pages = math.ceil(total / state.per_page) or 1
    page = min(state.page, total_pages)
    start = (page - 1) * state.per_page
    end = min(start + state.per_page, total)
    return Page(
        items=filtered[start:end],
        total=total,
        page=page,
        per_page=state.per_page,
        total_pages=total_pages,
        start=start + 1 if total else 0,
        end=end,
    )


def unwrap_collection(payload: Any) -> list:
    """Accept bare lists and ``{"data": [...]}`` envelopes (paginated or not)."""
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, Mapping):
            return unwrap_collection(data)
    logger.warning("Unrecognized collection payload of type %s; treating as empty", type(payload).__name__)
    return []


@dataclass(frozen=True)
class FetchTicket:
    selection_id: Any
    sequence: int


class SelectionGuard:
    """Tracks the latest selection so responses for earlier selections can be discarded."""

    def __init__(self) -> None:
        self._sequence = 0
        self._current: Optional[FetchTicket] = None

    @property
    def current(self) -> Optional[FetchTicket]:
        return self._current

    def select(self, selection_id: Any) -> FetchTicket:
        self._sequence += 1
        self._current = FetchTicket(selection_id=selection_id, sequence=self._sequence)
        return self._current

    def is_current(self, ticket: FetchTicket) -> bool:
        return self._current is not None and ticket == self._current

    def resolve(self, ticket: FetchTicket, result: T, apply: Callable[[T], None]) -> bool:
        if not self.is_current(ticket):
            logger.debug(
                "Discarding stale result for selection %s (current: %s)",
                ticket.selection_id,
                self._current.selection_id if self._current else None,
            )
            return False
        apply(result)
        return True
