import queue
import unittest
from datetime import datetime, timedelta, timezone

from fake_firestore import FakeFirestore

from app.core.errors import StoreReadError
from app.services.patient_repository import PatientRepository
from app.services.subscriptions import DEFAULT_BUFFER_SIZE, SubscriptionClosed

TODAY = datetime.now(timezone.utc).date()
YESTERDAY = (TODAY - timedelta(days=1)).isoformat()


def patient(name, **extra):
    return {"name": name, "birthdate": "1990-01-01", "email": "p@example.com", **extra}


class TestLiveQueries(unittest.TestCase):
    def setUp(self):
        self.db = FakeFirestore()
        self.repo = PatientRepository(db=self.db)

    def test_list_all_pushes_every_change(self):
        seen = []
        sub = self.repo.list_all(lambda patients: seen.append([p.name for p in patients]))

        bob = self.repo.create(patient("Bob"))
        self.repo.create(patient("Alice"))
        self.repo.update(bob, {"phone": "123"})

        self.assertEqual(seen[0], [])
        self.assertEqual(seen[1], ["Bob"])
        self.assertEqual(seen[2], ["Alice", "Bob"])
        self.assertEqual(len(seen), 4)
        self.assertEqual([p.name for p in sub.latest], ["Alice", "Bob"])
        sub.unsubscribe()

    def test_delete_shows_up_in_next_snapshot(self):
        pid = self.repo.create(patient("Bob"))
        self.repo.add_record(pid, {"date": "2024-01-01", "diagnosis": "Flu"})

        with self.repo.list_all() as sub:
            self.assertEqual([p.id for p in sub.latest], [pid])
            self.repo.delete(pid)
            self.assertEqual(sub.latest, [])

    def test_unsubscribe_stops_updates(self):
        seen = []
        sub = self.repo.list_all(seen.append)
        sub.unsubscribe()
        sub.unsubscribe()
        self.repo.create(patient("Bob"))

        self.assertEqual(len(seen), 1)
        self.assertFalse(sub.active)
        self.assertEqual(self.db.watches, [])

    def test_context_manager_releases_watch(self):
        with self.repo.search_by_field("Bo", "name"):
            self.assertEqual(len(self.db.watches), 1)
        self.assertEqual(self.db.watches, [])

    def test_search_subscription_only_sees_prefix_matches(self):
        with self.repo.search_by_field("Jo", "name") as sub:
            self.repo.create(patient("John"))
            self.repo.create(patient("jo-anne"))
            self.repo.create(patient("Alice"))
            self.assertEqual([p.name for p in sub.latest], ["John"])

    def test_upcoming_subscription_refilters_on_each_snapshot(self):
        pid = self.repo.create(patient("Bob"))
        with self.repo.list_with_upcoming_appointments() as sub:
            self.assertEqual(sub.latest, [])

            appt = self.repo.add_appointment(pid, {"date": TODAY.isoformat(), "doctor": "Dr. A", "status": "Confirmed"})
            self.assertEqual([p.name for p in sub.latest], ["Bob"])

            self.repo.update_appointment(pid, appt.id, {"date": YESTERDAY})
            self.assertEqual(sub.latest, [])

    def test_iterates_as_a_stream_until_closed(self):
        sub = self.repo.list_all()
        self.repo.create(patient("Bob"))
        sub.unsubscribe()

        snapshots = [[p.name for p in snap] for snap in sub]
        self.assertEqual(snapshots, [[], ["Bob"]])

        with self.assertRaises(SubscriptionClosed):
            sub.next_snapshot(timeout=0.1)

    def test_callback_subscriptions_do_not_buffer(self):
        seen = []
        with self.repo.list_all(seen.append) as sub:
            for i in range(50):
                self.repo.create(patient(f"P{i:02d}"))
            self.assertEqual(len(seen), 51)
            self.assertEqual(sub._queue.qsize(), 0)
            self.assertEqual(len(sub.latest), 50)

    def test_unread_stream_keeps_only_the_newest_snapshots(self):
        sub = self.repo.list_all()
        for i in range(50):
            self.repo.create(patient(f"P{i:02d}"))
        self.assertLessEqual(sub._queue.qsize(), DEFAULT_BUFFER_SIZE)
        self.assertEqual(len(sub.latest), 50)

        sub.unsubscribe()
        snapshots = list(sub)
        self.assertEqual(len(snapshots), DEFAULT_BUFFER_SIZE)
        self.assertEqual(len(snapshots[-1]), 50)

    def test_watch_failure_is_a_store_read_error(self):
        self.db.fail_reads = True
        with self.assertRaises(StoreReadError):
            self.repo.list_all()
        with self.assertRaises(StoreReadError):
            self.repo.search_by_field("Jo", "name")
        self.assertEqual(self.db.watches, [])

    def test_next_snapshot_times_out_when_nothing_changes(self):
        with self.repo.list_all() as sub:
            sub.next_snapshot(timeout=0.1)
            with self.assertRaises(queue.Empty):
                sub.next_snapshot(timeout=0.05)


if __name__ == "__main__":
    unittest.main()
