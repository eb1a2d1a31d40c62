"""
Concurrency tests against a file-backed SQLite database.

Each worker thread gets its own app context and therefore its own
session and connection, like concurrent request handlers.
"""

import os
import tempfile
import threading
import unittest
from datetime import timedelta
from unittest import mock

from sqlalchemy.pool import NullPool

from conftest import T0
from roomkeeper import create_app
from roomkeeper.extensions import db
from roomkeeper.models import AuditEvent, Product, Resource, UsageSession
from roomkeeper.models.audit import EVENT_CHECK_IN, EVENT_FORCE_END
from roomkeeper.models.resources import KIND_SEAT, STATUS_OCCUPIED
from roomkeeper.models.sessions import SESSION_ACTIVE
from roomkeeper.services import expiration_service, resource_store, session_lifecycle_service
from roomkeeper.services.settings_service import POLICY_AUTO, POLICY_MANUAL
from roomkeeper.validation import ConflictError


WORKERS = 50


class FileDatabaseTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {
                "connect_args": {"timeout": 30},
                "poolclass": NullPool,
            },
            "LOCK_RETRY_BACKOFF_SECONDS": 0.01,
            "RATE_LIMIT_ENABLED": False,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product = Product(code="1H", name="1 hour", duration_minutes=60, price=2000)
            db.session.add(product)
            db.session.add(Resource(kind=KIND_SEAT, code="A1", name="Seat A1", row_label="A", col_number=1))
            db.session.commit()
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()


class ConcurrentCheckinTests(FileDatabaseTestCase):
    def test_only_one_of_many_concurrent_checkins_wins(self):
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(WORKERS)

        def worker(n):
            with self.app.app_context():
                try:
                    barrier.wait()
                    session_lifecycle_service.begin_seat_session(
                        "A1", self.product_id, f"{n:04d}"
                    )
                    with lock:
                        results.append("checked_in")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(WORKERS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = [r for r in results if r == "checked_in"]
        failures = [r for r in results if r != "checked_in"]
        self.assertEqual(len(results), WORKERS)
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), WORKERS - 1)
        for exc in failures:
            self.assertIsInstance(exc, ConflictError, repr(exc))
            self.assertEqual(exc.kind, "CONFLICT")

        with self.app.app_context():
            active = db.session.query(UsageSession).filter_by(status=SESSION_ACTIVE).all()
            self.assertEqual(len(active), 1)
            self.assertEqual(db.session.query(UsageSession).count(), 1)

            seat = db.session.query(Resource).filter_by(kind=KIND_SEAT, code="A1").one()
            self.assertEqual(seat.status, STATUS_OCCUPIED)
            self.assertEqual(seat.current_session_id, active[0].id)
            self.assertEqual(seat.version, 2)

            check_ins = db.session.query(AuditEvent).filter_by(event_type=EVENT_CHECK_IN).count()
            self.assertEqual(check_ins, 1)

    def test_concurrent_checkout_and_force_end_leave_seat_available(self):
        with self.app.app_context():
            session_lifecycle_service.begin_seat_session("A1", self.product_id, "1234")

        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(2)

        def worker(force):
            with self.app.app_context():
                try:
                    barrier.wait()
                    session_lifecycle_service.end_session(
                        KIND_SEAT, "A1", None if force else "1234", force=force
                    )
                    with lock:
                        results.append("ended")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(f,)) for f in (False, True)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count("ended"), 1)
        for r in results:
            if r != "ended":
                self.assertIsInstance(r, ConflictError, repr(r))

        with self.app.app_context():
            seat = db.session.query(Resource).filter_by(kind=KIND_SEAT, code="A1").one()
            self.assertEqual(seat.status, "AVAILABLE")
            self.assertIsNone(seat.current_session_id)
            self.assertEqual(db.session.query(UsageSession).filter_by(status=SESSION_ACTIVE).count(), 0)


class SweepVersusExtendTests(FileDatabaseTestCase):
    """
    An admin extend that commits after the sweep has read an overdue
    session, but before the sweep writes, must win.
    """

    def _sweep_while_admin_extends(self, policy):
        with self.app.app_context():
            begun = session_lifecycle_service.begin_seat_session("A1", self.product_id, "1234", now=T0)
            session_id = begun.session.id
            db.session.remove()

        sweep_at = T0 + timedelta(minutes=61)
        real_read = session_lifecycle_service.get_resource_with_session
        raced = threading.Event()
        extend_errors = []

        def admin_extend():
            with self.app.app_context():
                try:
                    session_lifecycle_service.extend_session("A1", minutes=120, now=sweep_at)
                except Exception as exc:
                    extend_errors.append(exc)
                finally:
                    db.session.remove()

        def read_then_let_admin_extend(kind, code):
            snapshot = real_read(kind, code)
            if not raced.is_set():
                raced.set()
                admin = threading.Thread(target=admin_extend)
                admin.start()
                admin.join()
            return snapshot

        with mock.patch.object(
            session_lifecycle_service, "get_resource_with_session", read_then_let_admin_extend
        ):
            with self.app.app_context():
                try:
                    result = expiration_service.sweep_expired_sessions(policy=policy, now=sweep_at)
                finally:
                    db.session.remove()

        self.assertTrue(raced.is_set())
        self.assertEqual(extend_errors, [])
        self.assertEqual(result.processed, 0)
        self.assertEqual(result.failed, [])

        with self.app.app_context():
            session = resource_store.get_session(session_id)
            self.assertEqual(session.status, SESSION_ACTIVE)
            self.assertIsNone(session.ended_reason)
            self.assertEqual(session.end_at, sweep_at + timedelta(minutes=120))

            seat = resource_store.get_resource(KIND_SEAT, "A1")
            self.assertEqual(seat.status, STATUS_OCCUPIED)
            self.assertEqual(seat.current_session_id, session_id)

            force_ends = db.session.query(AuditEvent).filter_by(event_type=EVENT_FORCE_END).count()
            self.assertEqual(force_ends, 0)

    def test_auto_sweep_does_not_end_a_just_extended_session(self):
        self._sweep_while_admin_extends(POLICY_AUTO)

    def test_manual_sweep_does_not_expire_a_just_extended_session(self):
        self._sweep_while_admin_extends(POLICY_MANUAL)
