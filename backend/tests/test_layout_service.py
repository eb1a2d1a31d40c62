"""
Layout provisioning, seed data and label tests.
"""

import pytest

from roomkeeper.extensions import db
from roomkeeper.models import AuditEvent, Product, UsageSession
from roomkeeper.models.resources import KIND_LOCKER, KIND_SEAT
from roomkeeper.services import layout_service, resource_store, settings_service
from roomkeeper.services import session_lifecycle_service as lifecycle
from roomkeeper.validation import ValidationError


class TestApplyLayout:
    def test_builds_grid_and_padded_lockers(self, db_session):
        result = layout_service.apply_layout(2, 3, 12)

        assert result == {"seat_count": 6, "locker_count": 12}
        seats = [r.code for r in resource_store.list_resources(KIND_SEAT)]
        assert seats == ["A1", "A2", "A3", "B1", "B2", "B3"]
        lockers = [r.code for r in resource_store.list_resources(KIND_LOCKER)]
        assert lockers[0] == "001"
        assert lockers[-1] == "012"

    def test_wipes_sessions_and_logs(self, layout, products):
        lifecycle.begin_seat_session("A1", products["1h"], "1234")

        layout_service.apply_layout(1, 1, 0)

        assert db.session.query(UsageSession).count() == 0
        assert db.session.query(AuditEvent).count() == 0
        assert resource_store.get_resource(KIND_SEAT, "A1").status == "AVAILABLE"
        assert resource_store.list_resources(KIND_LOCKER) == []

    @pytest.mark.parametrize("rows,cols,lockers", [
        (27, 1, 0),
        (0, 1, 0),
        (1, 100, 0),
        (1, 1, 1000),
        (1, 1, -1),
        ("4", 4, 4),
        (None, 4, 4),
    ])
    def test_rejects_out_of_range(self, layout, rows, cols, lockers):
        with pytest.raises(ValidationError):
            layout_service.apply_layout(rows, cols, lockers)
        # Existing layout untouched
        assert len(resource_store.list_resources(KIND_SEAT)) == 3


class TestSeedDefaults:
    def test_seeds_empty_database(self, db_session):
        created = layout_service.seed_defaults()

        assert created == {"products": 4, "seats": 16, "lockers": 20}
        assert [p.code for p in resource_store.list_products()] == ["1H", "2H", "3H", "DAY"]
        assert resource_store.get_resource(KIND_LOCKER, "020") is not None

    def test_is_idempotent(self, db_session):
        layout_service.seed_defaults()
        created = layout_service.seed_defaults()

        assert created == {"products": 0, "seats": 0, "lockers": 0}
        assert db.session.query(Product).count() == 4

    def test_leaves_existing_layout(self, layout):
        created = layout_service.seed_defaults()

        assert created["seats"] == 0
        assert len(resource_store.list_resources(KIND_SEAT)) == 3


class TestLabels:
    def test_uses_configured_format(self, layout):
        settings_service.update_settings({"qrFormat": "APP1"})

        labels = layout_service.build_labels()

        assert {"kind": KIND_LOCKER, "id": "002", "name": "Locker 2", "code": "APP1|LOCKER|002|v1"} in labels
        assert len(labels) == 6

    def test_explicit_format_wins(self, layout):
        settings_service.update_settings({"qrFormat": "APP1"})

        labels = layout_service.build_labels("LEGACY")

        assert labels[0] == {"kind": KIND_SEAT, "id": "A1", "name": "Seat A1", "code": "SEAT:A1"}

    def test_unknown_format_rejected(self, layout):
        with pytest.raises(ValidationError):
            layout_service.build_labels("QR9")
