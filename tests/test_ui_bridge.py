from __future__ import annotations

import threading
import unittest
from unittest import mock

from services.ui_bridge import UiBridge


class UiBridgeTests(unittest.TestCase):
    def test_calls_run_in_order_on_flush(self) -> None:
        bridge = UiBridge()
        seen: list[int] = []
        bridge.emit_call(lambda: seen.append(1))
        bridge.emit_call(lambda: seen.append(2))
        self.assertEqual(seen, [])
        bridge.flush()
        self.assertEqual(seen, [1, 2])

    def test_calls_from_other_threads(self) -> None:
        bridge = UiBridge()
        seen: list[int] = []
        workers = [threading.Thread(target=bridge.emit_call, args=(lambda i=i: seen.append(i),)) for i in range(10)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        bridge.flush()
        self.assertEqual(sorted(seen), list(range(10)))

    def test_flush_is_bounded_per_tick(self) -> None:
        bridge = UiBridge()
        seen: list[int] = []
        for i in range(5):
            bridge.emit_call(lambda i=i: seen.append(i))
        bridge.flush(max_items=3)
        self.assertEqual(seen, [0, 1, 2])
        bridge.flush(max_items=3)
        self.assertEqual(seen, [0, 1, 2, 3, 4])

    @mock.patch("services.ui_bridge.ui.notify")
    def test_notify_and_failing_call(self, notify) -> None:
        bridge = UiBridge()
        bridge.emit_notify("Saved", "positive")

        def broken() -> None:
            raise RuntimeError("boom")

        bridge.emit_call(broken)
        bridge.flush()
        notify.assert_any_call("Saved", type="positive")
        notify.assert_any_call("UI update failed: boom", type="negative")

    @mock.patch("services.ui_bridge.ui.notify")
    def test_identical_pending_notices_are_sent_once(self, notify) -> None:
        bridge = UiBridge()
        bridge.emit_notify("Failed to load grants.", "negative")
        bridge.emit_notify("Failed to load grants.", "negative")
        self.assertEqual(bridge.flush(), 1)
        bridge.emit_notify("Failed to load grants.", "negative")
        bridge.flush()
        self.assertEqual(notify.call_count, 2)

    def test_stopped_bridge_drops_messages(self) -> None:
        bridge = UiBridge()
        seen: list[int] = []
        bridge.stop()
        bridge.emit_call(lambda: seen.append(1))
        bridge.flush()
        self.assertTrue(bridge.stopped())
        self.assertEqual(seen, [])


if __name__ == "__main__":
    unittest.main()
