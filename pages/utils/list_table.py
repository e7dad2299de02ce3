from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from nicegui import run, ui

from services.list_view import ALL, ListViewState, Record
from services.live_query import LiveQuery, OneShotQuery


CellRenderer = Callable[[Record], None]
BulkActionsBuilder = Callable[[list[str]], None]


@dataclass(frozen=True)
class Column:
    label: str
    render: CellRenderer
    classes: str = "flex-1"


def text_cell(field_name: str, *, fallback: str = "-", classes: str = "") -> CellRenderer:
    def _render(record: Record) -> None:
        value = record.get(field_name)
        ui.label(str(value) if value not in (None, "") else fallback).classes(f"text-sm {classes}".strip())
    return _render


class ListTable:
    """
    Renders one ListViewState: search box, sort/filter selects, optional checkbox
    column with bulk actions, rows and pagination controls.

    The table only talks to the view state; pages call refresh() after they
    replaced the source set (LiveQuery/OneShotQuery delivery, row mutation).
    """

    def __init__(
        self,
        view: ListViewState,
        columns: list[Column],
        *,
        search_placeholder: str = "Search...",
        show_search: bool = True,
        show_sort: bool = True,
        filters: Optional[dict[str, dict[str, str]]] = None,  # field -> {value: label}, "all" = no filter
        selectable: bool = False,
        bulk_actions: Optional[BulkActionsBuilder] = None,
        row_actions: Optional[CellRenderer] = None,
        empty_text: str = "No records found.",
        item_label: str = "results",
        on_refresh: Optional[Callable[[], None]] = None,
    ) -> None:
        self.view = view
        self.columns = columns
        self.search_placeholder = search_placeholder
        self.show_search = show_search
        self.show_sort = show_sort and bool(view.sort_labels)
        self.filters = filters or {}
        self.selectable = selectable
        self.bulk_actions = bulk_actions
        self.row_actions = row_actions
        self.empty_text = empty_text
        self.item_label = item_label
        self.on_refresh = on_refresh
        self.loading = True
        self._body: Optional[Callable[[], None]] = None

    # ----- public -----

    def set_loading(self, loading: bool) -> None:
        self.loading = loading
        self.refresh()

    def refresh(self) -> None:
        if self._body is not None:
            self._body.refresh()
        if self.on_refresh is not None:
            self.on_refresh()

    def render(self) -> None:
        with ui.column().classes("w-full gap-3"):
            self._render_toolbar()

            @ui.refreshable
            def body() -> None:
                self._render_selection_bar()
                self._render_rows()
                self._render_pagination()

            self._body = body
            body()

    # ----- parts -----

    def _render_toolbar(self) -> None:
        if not (self.show_search or self.show_sort or self.filters):
            return
        with ui.row().classes("w-full items-center gap-3"):
            if self.show_search:
                def on_search(e: Any) -> None:
                    self.view.set_query(e.value)
                    self.refresh()

                ui.input(placeholder=self.search_placeholder, value=self.view.query, on_change=on_search).props(
                    "dense outlined clearable"
                ).classes("flex-1 min-w-[220px]").props('prepend-icon="search"')

            for field_name, options in self.filters.items():
                def on_filter(e: Any, f: str = field_name) -> None:
                    self.view.set_filter(f, e.value or ALL)
                    self.refresh()

                ui.select(
                    options=options,
                    value=self.view.filters.get(field_name, ALL),
                    on_change=on_filter,
                ).props("dense outlined").classes("w-48")

            if self.show_sort:
                def on_sort(e: Any) -> None:
                    if e.value:
                        self.view.set_sort(e.value)
                        self.refresh()

                ui.select(
                    options=self.view.sort_labels,
                    value=self.view.sort_label,
                    label="Sort by",
                    on_change=on_sort,
                ).props("dense outlined").classes("w-48")

    def _render_selection_bar(self) -> None:
        if not self.selectable:
            return
        selected = self.view.selected_ids
        if not selected:
            return
        with ui.row().classes("w-full items-center gap-3 px-3 py-2 rounded-lg bg-blue-50"):
            ui.label(f"{len(selected)} selected").classes("text-sm font-medium")
            ui.space()
            if self.bulk_actions is not None:
                self.bulk_actions(selected)

    def _render_rows(self) -> None:
        page = self.view.view
        with ui.card().classes("w-full p-0 gap-0"):
            with ui.row().classes("w-full items-center gap-3 px-4 py-2 bg-gray-50 text-xs uppercase text-gray-500 no-wrap"):
                if self.selectable:
                    def on_all(e: Any) -> None:
                        self.view.select_all(bool(e.value))
                        self.refresh()

                    ui.checkbox(value=self.view.all_selected, on_change=on_all).props("dense").set_enabled(bool(page.rows))
                for column in self.columns:
                    ui.label(column.label).classes(column.classes)
                if self.row_actions is not None:
                    ui.label("Actions").classes("w-40 text-right")

            if self.loading:
                with ui.row().classes("w-full justify-center py-8"):
                    ui.spinner(size="lg")
                return

            if not page.rows:
                ui.label(self.empty_text).classes("w-full text-center text-sm text-gray-500 py-8")
                return

            for record in page.rows:
                record_id = str(record.get(self.view.id_field, ""))
                with ui.row().classes("w-full items-center gap-3 px-4 py-2 border-t no-wrap"):
                    if self.selectable:
                        def on_toggle(e: Any, rid: str = record_id) -> None:
                            self.view.toggle(rid, bool(e.value))
                            self.refresh()

                        ui.checkbox(value=self.view.is_selected(record_id), on_change=on_toggle).props("dense")
                    for column in self.columns:
                        with ui.element("div").classes(column.classes):
                            column.render(record)
                    if self.row_actions is not None:
                        with ui.row().classes("w-40 justify-end gap-1 no-wrap"):
                            self.row_actions(record)

    def _render_pagination(self) -> None:
        page = self.view.view
        if page.total_count == 0:
            return
        with ui.row().classes("w-full items-center gap-2"):
            ui.label(
                f"Showing {page.first_index} to {page.last_index} of {page.total_count} {self.item_label}"
            ).classes("text-sm text-gray-500")
            ui.space()

            def go_prev() -> None:
                self.view.prev_page()
                self.refresh()

            def go_next() -> None:
                self.view.next_page()
                self.refresh()

            ui.button(icon="chevron_left", on_click=go_prev).props("flat round dense").set_enabled(page.has_prev)
            ui.label(f"Page {page.page} of {page.total_pages}").classes("text-sm")
            ui.button(icon="chevron_right", on_click=go_next).props("flat round dense").set_enabled(page.has_next)


def live_list(ctx, view: ListViewState, table: ListTable, *, label: str) -> LiveQuery:
    """LiveQuery feeding `view`; owned by the page so the router closes it on navigation."""

    def on_records(records: list[Record]) -> None:
        view.set_source(records)
        table.loading = False
        table.refresh()

    def on_error(message: str) -> None:
        ui.notify(message, type="negative")

    return ctx.own(LiveQuery(ctx.store, on_records=on_records, on_error=on_error, dispatch=ctx.dispatch, label=label))


def one_shot_list(ctx, view: ListViewState, table: ListTable, *, label: str) -> OneShotQuery:
    """OneShotQuery feeding `view` (screens that read once on mount)."""

    def on_records(records: list[Record]) -> None:
        view.set_source(records)
        table.loading = False
        table.refresh()

    def on_error(message: str) -> None:
        ui.notify(message, type="negative")

    return ctx.own(OneShotQuery(ctx.store, on_records=on_records, on_error=on_error, run_io=run.io_bound, label=label))
