from __future__ import annotations

import json
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest

from taskclock.events import Event, EventBus


class TestEventBus(unittest.TestCase):
    def test_log_file_is_created_on_first_publish(self) -> None:
        with TemporaryDirectory() as tmp:
            event_log = Path(tmp) / "state" / "events.jsonl"
            bus = EventBus(event_log)
            self.assertFalse(event_log.parent.exists())

            captured: list[Event] = []
            bus.subscribe(captured.append)
            event = bus.publish_event("clock.started", "clock started", metadata={"clock": "x"})

            self.assertEqual([event], captured)
            self.assertTrue(event.id.startswith("evt-"))
            self.assertEqual("clock", event.topic)
            payload = json.loads(event_log.read_text(encoding="utf-8"))
            self.assertEqual("clock.started", payload["type"])
            self.assertEqual({"clock": "x"}, payload["metadata"])
            self.assertNotIn("source", payload)

    def test_read_events_returns_tail_and_skips_garbage(self) -> None:
        with TemporaryDirectory() as tmp:
            event_log = Path(tmp) / "events.jsonl"
            bus = EventBus(event_log)
            for idx in range(5):
                bus.publish_event("task.added", f"added {idx}")
            bus.publish_event("doc.saved", "saved")
            with event_log.open("a", encoding="utf-8") as handle:
                handle.write("not json\n\n[1, 2]\n")

            events = bus.read_events(limit=2, topic="task")
            self.assertEqual(["added 3", "added 4"], [item.message for item in events])
            self.assertEqual(6, len(bus.read_events()))
            self.assertEqual(["doc.saved"], [item.type for item in bus.read_events(topic="doc")])

    def test_missing_log_reads_as_empty(self) -> None:
        with TemporaryDirectory() as tmp:
            bus = EventBus(Path(tmp) / "never-written.jsonl")
            self.assertEqual([], bus.read_events())

    def test_memory_only_bus_keeps_bounded_recent_events(self) -> None:
        bus = EventBus(keep=3)
        for idx in range(5):
            bus.publish_event("clock.commented", f"note {idx}")

        self.assertEqual(["note 2", "note 3", "note 4"], [event.message for event in bus.recent])
        self.assertEqual(["note 4"], [event.message for event in bus.read_events(limit=1)])

    def test_unsubscribe_and_failing_handler(self) -> None:
        bus = EventBus()
        seen: list[str] = []

        def _boom(event: Event) -> None:
            raise RuntimeError("handler failure")

        bus.subscribe(_boom)
        unsubscribe = bus.subscribe(lambda event: seen.append(event.type))
        bus.publish_event("doc.saved", "saved")
        unsubscribe()
        unsubscribe()
        bus.publish_event("doc.loaded", "loaded")

        self.assertEqual(["doc.saved"], seen)
        self.assertEqual(2, len(bus.recent))

    def test_event_record_normalizes_fields(self) -> None:
        event = Event.from_mapping({"type": "task.moved", "severity": "WARN", "metadata": "bogus"})
        self.assertEqual("warn", event.severity)
        self.assertEqual({}, event.metadata)
        self.assertEqual("", event.message)
        self.assertEqual(event, Event.from_mapping(event.to_dict()))


if __name__ == "__main__":
    unittest.main()
