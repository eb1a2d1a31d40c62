"""
Audit log tests: append, tolerant decode, listing and retention prune.
"""

from datetime import timedelta

import pytest

from conftest import T0
from roomkeeper.extensions import db
from roomkeeper.models import AuditEvent
from roomkeeper.models.audit import ACTOR_ADMIN, ACTOR_CUSTOMER, EVENT_CHECK_IN, EVENT_EXTEND
from roomkeeper.services import audit_service


def _event(event_type, payload, created_at, actor=ACTOR_CUSTOMER):
    return audit_service.append_audit_event(event_type, payload, actor, occurred_at=created_at)


class TestAppend:
    def test_payload_is_json_with_utc_datetimes(self, db_session):
        ev = _event(EVENT_CHECK_IN, {"seatId": "A1", "endAt": T0}, T0)
        db.session.commit()

        assert audit_service.decode_payload(ev.payload) == {"seatId": "A1", "endAt": "2026-01-15T09:00:00Z"}

    def test_unknown_type_or_role_rejected(self, db_session):
        with pytest.raises(ValueError):
            audit_service.append_audit_event("TELEPORT", {}, ACTOR_CUSTOMER)
        with pytest.raises(ValueError):
            audit_service.append_audit_event(EVENT_CHECK_IN, {}, "JANITOR")


class TestDecode:
    @pytest.mark.parametrize("raw", ["{not json", "", "plain text"])
    def test_malformed_payload_returned_raw(self, raw):
        assert audit_service.decode_payload(raw) == raw

    def test_none(self):
        assert audit_service.decode_payload(None) is None

    def test_to_dict_tolerates_bad_payload(self, db_session):
        db.session.add(AuditEvent(event_type=EVENT_CHECK_IN, payload="{oops", actor_role=ACTOR_CUSTOMER))
        db.session.commit()

        event = db.session.query(AuditEvent).one()
        assert event.to_dict()["payload"] == "{oops"


class TestList:
    def test_newest_first_with_limit(self, db_session):
        for minutes in range(5):
            _event(EVENT_CHECK_IN, {"n": minutes}, T0 + timedelta(minutes=minutes))
        db.session.commit()

        events = audit_service.list_audit_events(limit=3)

        assert [audit_service.decode_payload(e.payload)["n"] for e in events] == [4, 3, 2]

    def test_filter_by_type_and_search(self, db_session):
        _event(EVENT_CHECK_IN, {"seatId": "A1"}, T0)
        _event(EVENT_CHECK_IN, {"seatId": "B7"}, T0)
        _event(EVENT_EXTEND, {"seatId": "B7"}, T0, actor=ACTOR_ADMIN)
        db.session.commit()

        assert len(audit_service.list_audit_events(event_type=EVENT_EXTEND)) == 1
        assert len(audit_service.list_audit_events(search="B7")) == 2
        assert len(audit_service.list_audit_events(search="admin")) == 1

    def test_limit_is_clamped(self, db_session):
        _event(EVENT_CHECK_IN, {}, T0)
        db.session.commit()

        assert len(audit_service.list_audit_events(limit=0)) == 1


class TestPrune:
    def test_removes_only_old_events(self, db_session):
        _event(EVENT_CHECK_IN, {"age": "old"}, T0 - timedelta(days=40))
        _event(EVENT_CHECK_IN, {"age": "new"}, T0 - timedelta(days=5))
        db.session.commit()

        deleted = audit_service.prune_audit_events(30, now=T0)

        assert deleted == 1
        remaining = audit_service.list_audit_events()
        assert [audit_service.decode_payload(e.payload)["age"] for e in remaining] == ["new"]

    def test_zero_retention_keeps_everything(self, db_session):
        _event(EVENT_CHECK_IN, {}, T0 - timedelta(days=4000))
        db.session.commit()

        assert audit_service.prune_audit_events(0, now=T0) == 0
        assert db.session.query(AuditEvent).count() == 1
