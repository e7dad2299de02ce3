from __future__ import annotations

import unittest
from datetime import datetime, timezone

from services.list_view import (
    ALL,
    ListViewState,
    by_number,
    by_text,
    by_timestamp,
    clamp_page,
    derive_view,
    filter_by_fields,
    filter_records,
    sort_records,
    total_pages,
)


def _records(count: int) -> list[dict]:
    return [{"id": f"r{i}", "name": f"Grant {i}", "status": "open" if i % 2 else "closed"} for i in range(1, count + 1)]


class FilterTests(unittest.TestCase):
    def test_query_is_trimmed_and_case_insensitive(self) -> None:
        records = [{"id": "1", "title": "Green Energy Fund"}, {"id": "2", "title": "Arts Council"}]
        self.assertEqual([r["id"] for r in filter_records(records, "  ENERGY ", ("title",))], ["1"])

    def test_blank_query_keeps_everything(self) -> None:
        records = _records(3)
        self.assertEqual(filter_records(records, "   ", ("name",)), records)

    def test_missing_fields_do_not_match(self) -> None:
        records = [{"id": "1"}, {"id": "2", "title": "none"}]
        self.assertEqual([r["id"] for r in filter_records(records, "none", ("title",))], ["2"])

    def test_all_and_empty_filters_are_ignored(self) -> None:
        records = _records(4)
        self.assertEqual(len(filter_by_fields(records, {"status": ALL})), 4)
        self.assertEqual(len(filter_by_fields(records, {"status": ""})), 4)
        self.assertEqual([r["id"] for r in filter_by_fields(records, {"status": "closed"})], ["r2", "r4"])


class SortTests(unittest.TestCase):
    def test_descending_sort_keeps_ties_in_source_order(self) -> None:
        records = [{"id": "a", "n": 1}, {"id": "b", "n": 2}, {"id": "c", "n": 1}]
        ordered = sort_records(records, by_number("n", label="n", descending=True))
        self.assertEqual([r["id"] for r in ordered], ["b", "a", "c"])

    def test_records_without_value_go_last(self) -> None:
        records = [{"id": "a"}, {"id": "b", "when": "2024-03-01"}, {"id": "c", "when": "2024-01-01"}]
        ordered = sort_records(records, by_timestamp("when", descending=False, label="when"))
        self.assertEqual([r["id"] for r in ordered], ["c", "b", "a"])

    def test_timestamps_mix_datetimes_and_iso_strings(self) -> None:
        records = [
            {"id": "new", "at": datetime(2024, 5, 1, tzinfo=timezone.utc)},
            {"id": "old", "at": "2023-01-01T00:00:00+00:00"},
        ]
        ordered = sort_records(records, by_timestamp("at", descending=True, label="at"))
        self.assertEqual([r["id"] for r in ordered], ["new", "old"])

    def test_text_sort_is_case_insensitive(self) -> None:
        records = [{"id": "1", "name": "beta"}, {"id": "2", "name": "Alpha"}]
        self.assertEqual([r["id"] for r in sort_records(records, by_text("name", label="name"))], ["2", "1"])


class PaginationTests(unittest.TestCase):
    def test_empty_set_has_one_page(self) -> None:
        self.assertEqual(total_pages(0, 5), 1)
        self.assertEqual(total_pages(11, 5), 3)

    def test_page_size_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            total_pages(3, 0)

    def test_page_is_clamped(self) -> None:
        self.assertEqual(clamp_page(0, 3), 1)
        self.assertEqual(clamp_page(9, 3), 3)

    def test_derive_view_reports_indices(self) -> None:
        view = derive_view(_records(12), page=3, page_size=5)
        self.assertEqual(view.ids, ["r11", "r12"])
        self.assertEqual((view.first_index, view.last_index, view.total_count), (11, 12, 12))
        self.assertTrue(view.has_prev)
        self.assertFalse(view.has_next)

    def test_empty_view_indices_are_zero(self) -> None:
        view = derive_view([], page=1, page_size=5)
        self.assertEqual((view.first_index, view.last_index, view.total_pages), (0, 0, 1))


class ListViewStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.state = ListViewState(
            search_fields=("name",),
            sort_options=[by_text("name", label="Name"), by_text("name", label="Name desc", descending=True)],
            page_size=5,
        )
        self.state.set_source(_records(12))

    def test_first_sort_option_is_the_default(self) -> None:
        self.assertEqual(self.state.sort_label, "Name")

    def test_unknown_default_sort_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ListViewState(search_fields=(), sort_options=[by_text("name", label="Name")], default_sort="Nope")

    def test_page_stays_in_range_when_source_shrinks(self) -> None:
        self.state.set_page(3)
        self.assertEqual(self.state.page, 3)
        self.state.set_source(_records(4))
        self.assertEqual(self.state.page, 1)

    def test_page_beyond_range_is_clamped(self) -> None:
        self.state.set_page(99)
        self.assertEqual(self.state.page, 3)

    def test_only_visible_rows_can_be_selected(self) -> None:
        visible = self.state.view.ids
        self.assertTrue(self.state.toggle(visible[0], True))
        hidden = next(r["id"] for r in self.state.source if r["id"] not in visible)
        self.assertFalse(self.state.toggle(hidden, True))
        self.assertEqual(self.state.selected_ids, [visible[0]])

    def test_select_all_covers_the_visible_page(self) -> None:
        self.state.select_all(True)
        self.assertTrue(self.state.all_selected)
        self.assertEqual(self.state.selected_ids, self.state.view.ids)
        self.state.select_all(False)
        self.assertEqual(self.state.selected_ids, [])

    def test_search_change_clears_selection(self) -> None:
        self.state.select_all(True)
        self.state.set_query("Grant 1")
        self.assertEqual(self.state.selected_ids, [])

    def test_page_change_clears_selection(self) -> None:
        self.state.select_all(True)
        self.state.next_page()
        self.assertEqual(self.state.page, 2)
        self.assertEqual(self.state.selected_ids, [])

    def test_new_snapshot_prunes_selection_to_visible_rows(self) -> None:
        first, second = self.state.view.ids[:2]
        self.state.toggle(first, True)
        self.state.toggle(second, True)
        self.state.set_source([r for r in self.state.source if r["id"] != first])
        self.assertEqual(self.state.selected_ids, [second])
        self.assertFalse(self.state.is_selected(first))

    def test_remove_ids_drops_rows_and_selection(self) -> None:
        doomed = self.state.view.ids[0]
        self.state.toggle(doomed, True)
        self.state.remove_ids([doomed])
        self.assertIsNone(self.state.get(doomed))
        self.assertEqual(self.state.selected_ids, [])
        self.assertEqual(self.state.view.total_count, 11)

    def test_patch_record_updates_source(self) -> None:
        self.assertTrue(self.state.patch_record("r1", {"status": "withdrawn"}))
        self.assertEqual(self.state.get("r1")["status"], "withdrawn")
        self.assertFalse(self.state.patch_record("missing", {"status": "x"}))

    def test_filter_all_removes_filter(self) -> None:
        self.state.set_filter("status", "open")
        self.assertEqual(self.state.view.total_count, 6)
        self.state.set_filter("status", ALL)
        self.assertEqual(self.state.view.total_count, 12)

    def test_unknown_sort_label_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.state.set_sort("Unknown")


class ListPropertyTests(unittest.TestCase):
    def _state(self, count: int, *, sorted_by_name: bool = True) -> ListViewState:
        state = ListViewState(
            search_fields=("name",),
            sort_options=(
                [by_text("name", label="Name"), by_text("name", label="Name desc", descending=True)]
                if sorted_by_name
                else ()
            ),
            page_size=5,
        )
        state.set_source(_records(count))
        return state

    def _all_pages(self, state: ListViewState) -> list[str]:
        ids: list[str] = []
        for page in range(1, state.view.total_pages + 1):
            state.set_page(page)
            ids.extend(state.view.ids)
        return ids

    def test_filtering_twice_changes_nothing(self) -> None:
        records = _records(12)
        once = filter_records(records, "grant 1", ("name",))
        self.assertEqual(filter_records(once, "grant 1", ("name",)), once)

    def test_pages_together_reproduce_the_filtered_sorted_rows(self) -> None:
        state = self._state(12)
        expected = [r["id"] for r in state.all_rows()]
        self.assertEqual(self._all_pages(state), expected)
        self.assertEqual(sorted(expected), sorted(r["id"] for r in _records(12)))

        state.set_filter("status", "open")
        ids = self._all_pages(state)
        self.assertEqual(ids, [r["id"] for r in state.all_rows()])
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(len(ids), 6)

    def test_twelve_records_make_three_pages(self) -> None:
        state = self._state(12, sorted_by_name=False)
        self.assertEqual(state.view.total_pages, 3)
        self.assertEqual(state.view.ids, ["r1", "r2", "r3", "r4", "r5"])

    def test_query_matching_two_records_fits_one_page(self) -> None:
        state = self._state(12)
        state.set_query("2")
        self.assertEqual(state.view.total_pages, 1)
        self.assertEqual(state.view.ids, ["r12", "r2"])

    def test_sort_change_clears_selection_of_visible_page(self) -> None:
        state = self._state(12)
        state.set_page(2)
        state.select_all(True)
        self.assertEqual(len(state.selected_ids), 5)
        state.set_sort("Name desc")
        self.assertEqual(state.page, 2)
        self.assertEqual(state.selected_ids, [])

    def test_view_change_that_keeps_visible_rows_keeps_selection(self) -> None:
        state = self._state(12, sorted_by_name=False)
        state.select_all(True)
        state.set_query("grant")
        self.assertEqual(state.selected_ids, ["r1", "r2", "r3", "r4", "r5"])

    def test_deleting_only_row_of_last_page_moves_to_new_last_page(self) -> None:
        state = self._state(11)
        state.set_page(3)
        self.assertEqual(state.view.ids, ["r9"])
        state.remove_ids(["r9"])
        self.assertEqual(state.page, 2)
        self.assertEqual(state.view.total_pages, 2)
        self.assertEqual(state.view.ids, ["r4", "r5", "r6", "r7", "r8"])


if __name__ == "__main__":
    unittest.main()
