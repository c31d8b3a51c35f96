from __future__ import annotations

from datetime import date, datetime, time, timedelta
import os
import time as time_module
import unittest
from unittest.mock import patch
import uuid

from taskclock.clock import Clock
from taskclock.clockedit import ClockEditSession, EditOutcome
from taskclock.doc import Doc
from taskclock.errors import IndexOutOfRange, SessionClosed
from taskclock.events import EventBus
from tests.helpers import local


def _doc_with_day() -> tuple[Doc, Clock, Clock]:
    doc = Doc(events=EventBus())
    morning = Clock(id=uuid.uuid4(), start=local(2024, 3, 1, 8), end=local(2024, 3, 1, 12))
    afternoon = Clock(id=uuid.uuid4(), start=local(2024, 3, 1, 13), end=local(2024, 3, 1, 17, 30))
    # inserted out of order on purpose
    doc.upsert_clock(afternoon)
    doc.upsert_clock(morning)
    doc.upsert_clock(Clock(id=uuid.uuid4(), start=local(2024, 3, 2, 9)))
    return doc, morning, afternoon


class TestClockEditSession(unittest.TestCase):
    def test_session_lists_day_clocks_in_start_order(self) -> None:
        doc, morning, afternoon = _doc_with_day()
        session = doc.open_clock_edit(date(2024, 3, 1))

        self.assertEqual(2, len(session))
        self.assertEqual(morning.id, session.get(1).id)
        self.assertEqual(afternoon.id, session.get(2).id)
        self.assertEqual(EditOutcome.PENDING, session.outcome)

    def test_edits_stay_isolated_until_commit(self) -> None:
        doc, morning, _afternoon = _doc_with_day()
        session = ClockEditSession.open(doc, date(2024, 3, 1))
        session.set_start_time(1, time(9, 0))

        self.assertEqual(local(2024, 3, 1, 8), doc.clock(morning.id).start)
        self.assertEqual(local(2024, 3, 1, 9), session.get(1).start)

        applied = session.commit()
        self.assertEqual(local(2024, 3, 1, 9), doc.clock(morning.id).start)
        self.assertIn(morning.id, applied)
        self.assertEqual(EditOutcome.APPLIED, session.outcome)

    def test_end_date_keeps_time_of_day(self) -> None:
        doc, _morning, afternoon = _doc_with_day()
        session = doc.open_clock_edit(date(2024, 3, 1))
        session.set_end_date(2, date(2024, 3, 2))
        session.commit()

        end = doc.clock(afternoon.id).end
        self.assertEqual(date(2024, 3, 2), end.date())
        self.assertEqual(time(17, 30, 0), end.time())

    def test_end_edits_ignore_open_clocks(self) -> None:
        doc = Doc()
        running = Clock(id=uuid.uuid4(), start=local(2024, 3, 1, 8))
        doc.upsert_clock(running)
        session = doc.open_clock_edit(date(2024, 3, 1))
        session.set_end_time(1, time(10, 0))
        session.set_end_date(1, date(2024, 3, 2))

        self.assertIsNone(session.get(1).end)

    def test_duration_sets_end_from_start(self) -> None:
        doc, morning, _afternoon = _doc_with_day()
        session = doc.open_clock_edit(date(2024, 3, 1))
        session.set_duration(1, timedelta(hours=1, minutes=30))
        self.assertEqual(local(2024, 3, 1, 9, 30), session.get(1).end)

    def test_out_of_range_entry_is_rejected(self) -> None:
        doc, _morning, _afternoon = _doc_with_day()
        session = doc.open_clock_edit(date(2024, 3, 1))
        for index in (0, 3):
            with self.subTest(index=index):
                with self.assertRaises(IndexOutOfRange):
                    session.set_start_time(index, time(7, 0))

    def test_cancel_discards_edits(self) -> None:
        doc, morning, _afternoon = _doc_with_day()
        session = doc.open_clock_edit(date(2024, 3, 1))
        session.set_end_time(1, time(11, 0))
        session.cancel()

        self.assertEqual(local(2024, 3, 1, 12), doc.clock(morning.id).end)
        self.assertEqual(EditOutcome.CANCELLED, session.outcome)
        with self.assertRaises(SessionClosed):
            session.commit()
        with self.assertRaises(SessionClosed):
            session.set_end_time(1, time(10, 0))

    def test_context_manager_cancels_pending_session(self) -> None:
        doc, morning, _afternoon = _doc_with_day()
        with doc.open_clock_edit(date(2024, 3, 1)) as session:
            session.set_start_time(1, time(6, 0))

        self.assertTrue(session.closed)
        self.assertEqual(EditOutcome.CANCELLED, session.outcome)
        self.assertEqual(local(2024, 3, 1, 8), doc.clock(morning.id).start)
        types = [event.type for event in doc.events.recent]
        self.assertEqual(["clockedit.cancelled"], types)

    def test_commit_publishes_event(self) -> None:
        doc, _morning, _afternoon = _doc_with_day()
        with doc.open_clock_edit(date(2024, 3, 1)) as session:
            session.commit()

        event = doc.events.recent[-1]
        self.assertEqual("clockedit.applied", event.type)
        self.assertEqual("2024-03-01", event.metadata["day"])
        self.assertEqual(2, len(event.metadata["clocks"]))

    def test_empty_day_session(self) -> None:
        doc = Doc()
        session = doc.open_clock_edit(date(2024, 1, 1))
        self.assertEqual(0, len(session))
        with self.assertRaises(IndexOutOfRange):
            session.get(1)
        self.assertEqual([], session.commit())


@unittest.skipUnless(hasattr(time_module, "tzset"), "needs time.tzset")
class TestClockEditAcrossDaylightSaving(unittest.TestCase):
    def setUp(self) -> None:
        env = patch.dict(os.environ, {"TZ": "Europe/Berlin"})
        env.start()
        self.addCleanup(time_module.tzset)
        self.addCleanup(env.stop)
        time_module.tzset()

    def test_start_time_keeps_wall_clock_after_spring_forward(self) -> None:
        doc = Doc()
        # 01:30 is still CET (+01:00); 09:00 the same day is CEST (+02:00)
        early = Clock(id=uuid.uuid4(), start=datetime(2024, 3, 31, 1, 30).astimezone())
        doc.upsert_clock(early)
        session = doc.open_clock_edit(date(2024, 3, 31))
        edited = session.set_start_time(1, time(9, 0))

        self.assertEqual(time(9, 0), edited.start.astimezone().time())
        self.assertEqual(timedelta(hours=2), edited.start.utcoffset())

    def test_end_date_keeps_wall_clock_after_spring_forward(self) -> None:
        doc = Doc()
        clock = Clock(
            id=uuid.uuid4(),
            start=datetime(2024, 3, 30, 9, 0).astimezone(),
            end=datetime(2024, 3, 30, 17, 30).astimezone(),
        )
        doc.upsert_clock(clock)
        with doc.open_clock_edit(date(2024, 3, 30)) as session:
            session.set_end_date(1, date(2024, 4, 2))
            session.commit()

        end = doc.clock(clock.id).end.astimezone()
        self.assertEqual(date(2024, 4, 2), end.date())
        self.assertEqual(time(17, 30), end.time())


if __name__ == "__main__":
    unittest.main()
