"""
Scan code resolver and generator tests.

Pure functions: no app or database needed.
"""

import pytest

from roomkeeper.models.resources import KIND_LOCKER, KIND_SEAT
from roomkeeper.services import scan_codes
from roomkeeper.services.scan_codes import FORMAT_APP1, FORMAT_LEGACY, KIND_UNKNOWN
from roomkeeper.validation import ValidationError, validate_user_tag


class TestResolve:
    def test_legacy_seat(self):
        result = scan_codes.resolve("SEAT:A12")
        assert result.kind == KIND_SEAT
        assert result.resource_id == "A12"

    def test_legacy_seat_is_case_insensitive_and_trimmed(self):
        result = scan_codes.resolve("  seat:b3 \n")
        assert (result.kind, result.resource_id) == (KIND_SEAT, "B3")

    def test_locker_padding_is_idempotent(self):
        assert scan_codes.resolve("LOCKER:5").resource_id == "005"
        assert scan_codes.resolve("LOCKER:05").resource_id == "005"
        assert scan_codes.resolve("LOCKER:005").resource_id == "005"

    def test_app1_locker(self):
        result = scan_codes.resolve("APP1|LOCKER|7|v1")
        assert (result.kind, result.resource_id) == (KIND_LOCKER, "007")

    def test_app1_seat_with_trailing_fields(self):
        result = scan_codes.resolve("app1|seat|c4|v2|printed-2026")
        assert (result.kind, result.resource_id) == (KIND_SEAT, "C4")

    @pytest.mark.parametrize("raw", [
        "bogus",
        "",
        "   ",
        "1234",
        "SEAT-A1",
        "SEAT:",
        "SEAT:AA1",
        "SEAT:A123",
        "LOCKER:1234",
        "LOCKER:A1",
        "DESK:A1",
        "APP1|DESK|A1|v1",
        "APP1|SEAT|A1",
        "APP2|SEAT|A1|v1",
        "APP1|LOCKER|12A|v1",
        "\u017fEAT:A1",
        "SEAT:\u212a1",
        "APP1|\u017fEAT|A1|v1",
        None,
        42,
    ])
    def test_unrecognized_input(self, raw):
        result = scan_codes.resolve(raw)
        assert result.kind == KIND_UNKNOWN
        assert result.resource_id is None
        assert not result.recognized

    def test_non_ascii_digits_rejected(self):
        assert scan_codes.resolve("LOCKER:١٢").kind == KIND_UNKNOWN


class TestGenerate:
    def test_legacy_formats(self):
        assert scan_codes.generate_seat_code("a1") == "SEAT:A1"
        assert scan_codes.generate_locker_code(7) == "LOCKER:007"

    def test_app1_formats(self):
        assert scan_codes.generate_seat_code("B12", FORMAT_APP1) == "APP1|SEAT|B12|v1"
        assert scan_codes.generate_locker_code("32", FORMAT_APP1) == "APP1|LOCKER|032|v1"

    def test_generated_codes_resolve_back(self):
        seat_ids = [f"{row}{col}" for row in "ADZ" for col in (1, 9, 10, 99)]
        locker_ids = [str(n).zfill(3) for n in (1, 20, 100, 999)]
        for fmt in (FORMAT_LEGACY, FORMAT_APP1):
            for seat_id in seat_ids:
                result = scan_codes.resolve(scan_codes.generate(KIND_SEAT, seat_id, fmt))
                assert (result.kind, result.resource_id) == (KIND_SEAT, seat_id)
            for locker_id in locker_ids:
                result = scan_codes.resolve(scan_codes.generate(KIND_LOCKER, locker_id, fmt))
                assert (result.kind, result.resource_id) == (KIND_LOCKER, locker_id)

    def test_invalid_format_rejected(self):
        with pytest.raises(ValidationError):
            scan_codes.generate(KIND_SEAT, "A1", "QR9")

    def test_invalid_ids_rejected(self):
        with pytest.raises(ValidationError):
            scan_codes.generate_seat_code("1A")
        with pytest.raises(ValidationError):
            scan_codes.generate_seat_code("\u212a1")
        with pytest.raises(ValidationError):
            scan_codes.generate_locker_code("1000")


class TestUserTag:
    @pytest.mark.parametrize("tag", ["0000", "1234", "9876"])
    def test_valid(self, tag):
        assert validate_user_tag(tag)

    @pytest.mark.parametrize("tag", ["123", "12345", "12a4", "", None, 1234, "1234\n"])
    def test_invalid(self, tag):
        assert not validate_user_tag(tag)
