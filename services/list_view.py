"""
Client-side derived lists.

Every list screen keeps the full result of a remote query (the source set)
and renders a filtered, sorted, paged subset of it. The functions here are
pure; ListViewState bundles them with the per-screen state (query, sort,
filters, page, selection) and keeps its invariants:

- the page number is always within [1, total_pages]
- selected ids are always a subset of the ids on the visible page
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

Record = dict[str, Any]

# Sentinel filter value meaning "do not filter on this field".
ALL = "all"

SORT_TEXT = "text"
SORT_TIMESTAMP = "timestamp"
SORT_NUMBER = "number"


# ------------------------------------------------------------------ filtering

def normalize_query(query: Any) -> str:
	return str(query or "").strip().casefold()


def _text(value: Any) -> str:
	return "" if value is None else str(value)


def filter_records(records: Iterable[Record], query: Any, fields: Sequence[str]) -> list[Record]:
	"""Keep records where the trimmed, case-folded query is a substring of any of `fields`."""
	needle = normalize_query(query)
	if not needle:
		return list(records)
	return [r for r in records if any(needle in _text(r.get(f)).casefold() for f in fields)]


def filter_by_fields(records: Iterable[Record], equals: dict[str, Any] | None) -> list[Record]:
	"""Exact-match filters; empty values and ALL are ignored."""
	active = {k: v for k, v in (equals or {}).items() if v not in (None, "", ALL)}
	if not active:
		return list(records)
	return [r for r in records if all(r.get(k) == v for k, v in active.items())]


# ------------------------------------------------------------------ sorting

def to_timestamp(raw: Any) -> Optional[float]:
	if raw is None or isinstance(raw, bool):
		return None
	if isinstance(raw, datetime):
		return raw.timestamp()
	if isinstance(raw, (int, float)):
		return float(raw)
	if isinstance(raw, str) and raw.strip():
		try:
			return datetime.fromisoformat(raw.strip()).timestamp()
		except ValueError:
			return None
	return None


@dataclass(frozen=True)
class SortKey:
	label: str
	field: str
	descending: bool = False
	kind: str = SORT_TEXT

	def value(self, record: Record) -> Any:
		raw = record.get(self.field)
		if raw is None or raw == "":
			return None
		if self.kind == SORT_TIMESTAMP:
			return to_timestamp(raw)
		if self.kind == SORT_NUMBER:
			try:
				return float(raw)
			except (TypeError, ValueError):
				return None
		return str(raw).casefold()


def by_timestamp(field_name: str, *, descending: bool, label: str) -> SortKey:
	return SortKey(label=label, field=field_name, descending=descending, kind=SORT_TIMESTAMP)


def by_text(field_name: str, *, label: str, descending: bool = False) -> SortKey:
	return SortKey(label=label, field=field_name, descending=descending, kind=SORT_TEXT)


def by_number(field_name: str, *, label: str, descending: bool = False) -> SortKey:
	return SortKey(label=label, field=field_name, descending=descending, kind=SORT_NUMBER)


def sort_records(records: Iterable[Record], sort_key: Optional[SortKey]) -> list[Record]:
	"""
	Stable sort by `sort_key`. Ties keep source order (also when descending).
	Records without a usable key value go last, in source order.
	"""
	if sort_key is None:
		return list(records)

	present: list[tuple[Any, Record]] = []
	missing: list[Record] = []
	for record in records:
		value = sort_key.value(record)
		if value is None:
			missing.append(record)
		else:
			present.append((value, record))

	present.sort(key=lambda pair: pair[0], reverse=sort_key.descending)
	return [record for _, record in present] + missing


# ------------------------------------------------------------------ pagination

def total_pages(count: int, page_size: int) -> int:
	if page_size < 1:
		raise ValueError("page_size must be >= 1")
	return max(1, math.ceil(max(0, count) / page_size))


def clamp_page(page: int, pages: int) -> int:
	return max(1, min(int(page), max(1, int(pages))))


def paginate(records: Sequence[Record], page: int, page_size: int) -> list[Record]:
	start = (max(1, int(page)) - 1) * page_size
	return list(records[start:start + page_size])


@dataclass(frozen=True)
class PageView:
	rows: list[Record]
	page: int
	total_pages: int
	total_count: int
	page_size: int
	id_field: str = "id"

	@property
	def ids(self) -> list[str]:
		return [str(r.get(self.id_field)) for r in self.rows]

	@property
	def has_prev(self) -> bool:
		return self.page > 1

	@property
	def has_next(self) -> bool:
		return self.page < self.total_pages

	@property
	def first_index(self) -> int:
		"""1-based position of the first visible row in the filtered set (0 when empty)."""
		return (self.page - 1) * self.page_size + 1 if self.rows else 0

	@property
	def last_index(self) -> int:
		return self.first_index + len(self.rows) - 1 if self.rows else 0


def derive_rows(
	records: Iterable[Record],
	*,
	query: Any = "",
	fields: Sequence[str] = (),
	sort_key: Optional[SortKey] = None,
	equals: dict[str, Any] | None = None,
) -> list[Record]:
	rows = filter_by_fields(records, equals)
	rows = filter_records(rows, query, fields)
	return sort_records(rows, sort_key)


def derive_view(
	records: Iterable[Record],
	*,
	query: Any = "",
	fields: Sequence[str] = (),
	sort_key: Optional[SortKey] = None,
	equals: dict[str, Any] | None = None,
	page: int = 1,
	page_size: int,
	id_field: str = "id",
) -> PageView:
	rows = derive_rows(records, query=query, fields=fields, sort_key=sort_key, equals=equals)
	pages = total_pages(len(rows), page_size)
	current = clamp_page(page, pages)
	return PageView(
		rows=paginate(rows, current, page_size),
		page=current,
		total_pages=pages,
		total_count=len(rows),
		page_size=page_size,
		id_field=id_field,
	)


# ------------------------------------------------------------------ stateful view

class ListViewState:
	"""Source set + query/sort/filter/page/selection for one list screen."""

	def __init__(
		self,
		*,
		search_fields: Sequence[str],
		sort_options: Sequence[SortKey] = (),
		default_sort: str | None = None,
		page_size: int = 5,
		id_field: str = "id",
	) -> None:
		if page_size < 1:
			raise ValueError("page_size must be >= 1")
		self.search_fields = tuple(search_fields)
		self.sort_options = {s.label: s for s in sort_options}
		if default_sort is not None and default_sort not in self.sort_options:
			raise ValueError(f"Unknown sort option: {default_sort}")
		self.sort_label: str | None = default_sort or next(iter(self.sort_options), None)
		self.page_size = page_size
		self.id_field = id_field

		self.query = ""
		self.filters: dict[str, Any] = {}
		self.page = 1
		self._source: list[Record] = []
		self._selection: set[str] = set()
		self._view = self._derive()

	# ----- read side -----

	@property
	def source(self) -> list[Record]:
		return list(self._source)

	@property
	def view(self) -> PageView:
		return self._view

	@property
	def sort_key(self) -> Optional[SortKey]:
		return self.sort_options.get(self.sort_label) if self.sort_label else None

	@property
	def sort_labels(self) -> list[str]:
		return list(self.sort_options)

	def all_rows(self) -> list[Record]:
		"""Filtered + sorted rows across all pages."""
		return derive_rows(
			self._source,
			query=self.query,
			fields=self.search_fields,
			sort_key=self.sort_key,
			equals=self.filters,
		)

	def get(self, record_id: str) -> Optional[Record]:
		for record in self._source:
			if str(record.get(self.id_field)) == str(record_id):
				return record
		return None

	# ----- source set -----

	def set_source(self, records: Iterable[Record]) -> None:
		"""Replace the source set wholesale (fetch result or live snapshot)."""
		self._source = [dict(r) for r in records]
		self._recompute(on_visible_change="prune")

	def remove_ids(self, ids: Iterable[str]) -> None:
		doomed = {str(i) for i in ids}
		self._source = [r for r in self._source if str(r.get(self.id_field)) not in doomed]
		self._selection -= doomed
		self._recompute(on_visible_change="prune")

	def patch_record(self, record_id: str, fields: Record) -> bool:
		record = self.get(record_id)
		if record is None:
			return False
		record.update(fields)
		self._recompute(on_visible_change="prune")
		return True

	# ----- view changes -----

	def set_query(self, query: Any) -> None:
		self.query = str(query or "")
		self._recompute(on_visible_change="clear")

	def set_sort(self, label: str) -> None:
		if label not in self.sort_options:
			raise ValueError(f"Unknown sort option: {label}")
		self.sort_label = label
		self._recompute(on_visible_change="clear")

	def set_filter(self, field_name: str, value: Any) -> None:
		if value in (None, "", ALL):
			self.filters.pop(field_name, None)
		else:
			self.filters[field_name] = value
		self._recompute(on_visible_change="clear")

	def set_page(self, page: int) -> None:
		self.page = int(page)
		self._recompute(on_visible_change="clear")

	def next_page(self) -> None:
		self.set_page(self.page + 1)

	def prev_page(self) -> None:
		self.set_page(self.page - 1)

	# ----- selection -----

	@property
	def selected_ids(self) -> list[str]:
		return [i for i in self._view.ids if i in self._selection]

	@property
	def all_selected(self) -> bool:
		visible = set(self._view.ids)
		return bool(visible) and visible <= self._selection

	def is_selected(self, record_id: str) -> bool:
		return str(record_id) in self._selection

	def toggle(self, record_id: str, checked: bool) -> bool:
		"""Select/deselect a visible row. Returns False for rows not on the visible page."""
		record_id = str(record_id)
		if record_id not in self._view.ids:
			return False
		if checked:
			self._selection.add(record_id)
		else:
			self._selection.discard(record_id)
		return True

	def select_all(self, checked: bool) -> None:
		self._selection = set(self._view.ids) if checked else set()

	def clear_selection(self) -> None:
		self._selection = set()

	# ----- internals -----

	def _derive(self) -> PageView:
		return derive_view(
			self._source,
			query=self.query,
			fields=self.search_fields,
			sort_key=self.sort_key,
			equals=self.filters,
			page=self.page,
			page_size=self.page_size,
			id_field=self.id_field,
		)

	def _recompute(self, *, on_visible_change: str) -> None:
		before = set(self._view.ids)
		self._view = self._derive()
		self.page = self._view.page

		visible = set(self._view.ids)
		if on_visible_change == "clear" and visible != before:
			self._selection = set()
		else:
			self._selection &= visible
