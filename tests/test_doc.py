from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from tempfile import TemporaryDirectory
import unittest
import uuid

from taskclock.doc import Doc
from taskclock.errors import CycleDetected, DeserializationError, DocumentIOError, IndexOutOfRange
from taskclock.events import EventBus
from taskclock.store import TaskStore
from taskclock.tasks import Progress, Task
from tests.helpers import Ticker, local, sample_tree


class TestDoc(unittest.TestCase):
    def test_new_document_has_untitled_root(self) -> None:
        doc = Doc.new()
        root = doc.get_root()
        self.assertEqual(doc.root, root.id)
        self.assertEqual("", root.title)
        self.assertIsNone(doc.find_parent(doc.root))
        self.assertIsNone(doc.current_clock)

    def test_add_subtask_links_parent(self) -> None:
        tree = sample_tree()
        doc = tree.doc
        self.assertEqual(tree.project.id, doc.find_parent(tree.build.id))
        self.assertEqual([tree.tests.id, tree.build.id, tree.project.id, doc.root], doc.path_to_root(tree.tests.id))
        self.assertEqual(tree.design.id, doc.task_child(tree.project.id, 1))
        self.assertEqual(tree.build.id, doc.task_child_prefix(tree.project.id, "bu"))

    def test_progress_summary_counts_tracked_children_only(self) -> None:
        doc = Doc()
        parent = Task.new("parent")
        doc.add_subtask(parent, doc.root)
        states = [Progress.DONE, Progress.WORK, None, Progress.TODO]
        for idx, state in enumerate(states):
            child = Task.new(f"child {idx}")
            doc.add_subtask(child, parent.id)
            doc.modify_task(child.id, lambda task, state=state: task.set_progress(state))

        self.assertEqual((1, 3), doc.progress_summary(parent.id))
        self.assertEqual((0, 0), doc.progress_summary(doc.root))

    def test_reorder_child_uses_one_based_positions(self) -> None:
        doc = Doc()
        ids = []
        for title in ("a", "b", "c"):
            task = Task.new(title)
            doc.add_subtask(task, doc.root)
            ids.append(task.id)

        doc.reorder_child(doc.root, 3, 1)
        self.assertEqual((ids[2], ids[0], ids[1]), doc.get_root().children)
        with self.assertRaises(IndexOutOfRange):
            doc.reorder_child(doc.root, 4, 1)

    def test_move_task_rejects_root_and_cycles(self) -> None:
        tree = sample_tree()
        doc = tree.doc
        with self.assertRaises(CycleDetected):
            doc.move_task(doc.root, tree.project.id)
        with self.assertRaises(CycleDetected):
            doc.move_task(tree.project.id, tree.tests.id)

        doc.move_task(tree.tests.id, doc.root)
        self.assertEqual(doc.root, doc.find_parent(tree.tests.id))
        self.assertEqual((), doc.get(tree.build.id).children)

    def test_save_and_load_round_trip(self) -> None:
        ticker = Ticker(local(2024, 3, 1, 9))
        tree = sample_tree(Doc(now=ticker))
        doc = tree.doc
        doc.clock_new()
        doc.clock_assign(tree.build.id)
        doc.clock_comment("wiring")
        doc.clock_out()
        active = doc.clock_new()

        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "tasks.json"
            doc.save(path)
            payload = json.loads(path.read_text(encoding="utf-8"))
            loaded = Doc.load(path)

        self.assertEqual({"map", "clocks", "current_clock", "root"}, set(payload))
        self.assertEqual(str(doc.root), payload["root"])
        self.assertEqual(doc.root, loaded.root)
        self.assertEqual(active.id, loaded.current_clock)
        self.assertEqual({task.id: task for task in doc.tasks}, {task.id: task for task in loaded.tasks})
        self.assertEqual({clock.id: clock for clock in doc.clocks}, {clock.id: clock for clock in loaded.clocks})
        self.assertEqual(tree.project.id, loaded.find_parent(tree.build.id))

    def test_load_accepts_documents_without_clocks(self) -> None:
        root = Task.new("legacy")
        payload = {"map": {str(root.id): root.to_dict()}, "root": str(root.id)}
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "old.json"
            path.write_text(json.dumps(payload), encoding="utf-8")
            doc = Doc.load(path)

        self.assertEqual("legacy", doc.get_root().title)
        self.assertEqual(0, len(doc.clocks))
        self.assertIsNone(doc.current_clock)

    def test_load_missing_file_raises_io_error(self) -> None:
        with TemporaryDirectory() as tmp:
            with self.assertRaises(DocumentIOError):
                Doc.load(Path(tmp) / "missing.json")

    def test_load_malformed_documents(self) -> None:
        root = Task.new()
        cases = [
            "{not json",
            json.dumps([1, 2]),
            json.dumps({"root": str(root.id)}),
            json.dumps({"map": {str(root.id): root.to_dict()}, "root": str(uuid.uuid4())}),
            json.dumps({"map": {str(root.id): root.to_dict()}, "root": str(root.id), "clocks": "none"}),
            json.dumps({"map": {str(root.id): root.to_dict()}, "root": str(root.id), "current_clock": str(uuid.uuid4())}),
        ]
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.json"
            for text in cases:
                with self.subTest(text=text):
                    path.write_text(text, encoding="utf-8")
                    with self.assertRaises(DeserializationError):
                        Doc.load(path)

            path.write_bytes(b'{"map": {}, "root": "\xff\xfe"}')
            with self.assertRaises(DeserializationError):
                Doc.load(path)

    def test_tasks_and_root_must_be_given_together(self) -> None:
        store = TaskStore([Task.new("kept")])
        with self.assertRaises(ValueError):
            Doc(tasks=store)
        with self.assertRaises(ValueError):
            Doc(root=uuid.uuid4())

    def test_save_to_unwritable_location_raises_io_error(self) -> None:
        doc = Doc()
        with TemporaryDirectory() as tmp:
            with self.assertRaises(DocumentIOError):
                doc.save(Path(tmp) / "missing-dir" / "tasks.json")

    def test_day_clocks_scoped_to_subtree(self) -> None:
        ticker = Ticker(local(2024, 3, 1, 9))
        tree = sample_tree(Doc(now=ticker))
        doc = tree.doc
        doc.clock_new()
        doc.clock_assign(tree.tests.id)
        doc.clock_new()
        doc.clock_assign(tree.design.id)
        doc.clock_out()

        scoped = doc.day_clocks(date(2024, 3, 1), tree.build.id)
        self.assertEqual([tree.tests.id], [clock.task_id for clock in scoped])
        self.assertEqual(2, len(doc.range_clocks(date(2024, 2, 1), date(2024, 3, 31))))
        self.assertEqual(1, len(doc.task_clocks(tree.design.id)))

    def test_mutations_publish_events(self) -> None:
        bus = EventBus()
        doc = Doc(events=bus, now=Ticker(local(2024, 3, 1, 9)))
        task = Task.new("tracked")
        doc.add_subtask(task, doc.root)
        doc.clock_new()
        doc.clock_assign(task.id)
        doc.clock_comment("note")
        doc.clock_new()
        doc.clock_out()

        types = [event.type for event in bus.recent]
        self.assertEqual(
            [
                "task.added",
                "clock.started",
                "clock.assigned",
                "clock.commented",
                "clock.stopped",
                "clock.started",
                "clock.stopped",
            ],
            types,
        )
        self.assertEqual({"info"}, {event.severity for event in bus.recent})
        self.assertEqual(str(task.id), bus.recent[2].metadata["task"])


if __name__ == "__main__":
    unittest.main()
