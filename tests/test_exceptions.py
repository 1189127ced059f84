"""Tests for the backup exception hierarchy.

These tests verify:
1. Exception structure (code, message, details)
2. Default codes per subclass
3. String representation
4. Dictionary conversion for JSON serialization
"""

import json

import pytest

from attendance_backup.exceptions import (
    BackupError,
    BackupIOError,
    BackupNotFoundError,
    ConfigurationError,
    IntegrityCheckFailedError,
    InvalidTierError,
    PartialRotationFailure,
    SourceMissingError,
)


class TestBackupError:
    """Tests for the base BackupError class."""

    def test_basic_construction(self):
        """Message is stored, code defaults, details default to empty."""
        error = BackupError("Something broke")

        assert error.code == "BACKUP_ERROR"
        assert error.message == "Something broke"
        assert error.details == {}

    def test_explicit_code_overrides_default(self):
        error = BackupError("Something broke", code="CUSTOM")
        assert error.code == "CUSTOM"

    def test_str_without_details(self):
        assert str(BackupError("Test message")) == "BACKUP_ERROR: Test message"

    def test_str_with_details(self):
        result = str(BackupError("Test message", details={"foo": "bar"}))

        assert result.startswith("BACKUP_ERROR: Test message")
        assert "foo" in result
        assert "bar" in result

    def test_args_contains_message(self):
        error = BackupError("The error message")
        assert "The error message" in error.args

    def test_to_dict_is_json_serializable(self):
        """to_dict output survives json.dumps."""
        error = BackupError("Oops", details={"backup_id": "daily-2024-06-01"})

        data = error.to_dict()
        assert data == {
            "code": "BACKUP_ERROR",
            "message": "Oops",
            "details": {"backup_id": "daily-2024-06-01"},
        }
        assert json.loads(json.dumps(data)) == data


class TestSubclasses:
    """Each failure kind carries its own machine-readable code."""

    @pytest.mark.parametrize(
        "cls,code",
        [
            (SourceMissingError, "SOURCE_MISSING"),
            (BackupIOError, "IO_ERROR"),
            (IntegrityCheckFailedError, "INTEGRITY_CHECK_FAILED"),
            (BackupNotFoundError, "NOT_FOUND"),
            (PartialRotationFailure, "PARTIAL_ROTATION_FAILURE"),
            (ConfigurationError, "CONFIGURATION_ERROR"),
            (InvalidTierError, "INVALID_TIER"),
        ],
    )
    def test_default_codes(self, cls, code):
        error = cls("message")
        assert error.code == code
        assert isinstance(error, BackupError)

    def test_catch_as_base(self):
        """Subclasses can be caught as BackupError."""
        with pytest.raises(BackupError) as exc_info:
            raise BackupNotFoundError("gone", details={"backup_id": "x"})

        assert exc_info.value.code == "NOT_FOUND"
        assert exc_info.value.details["backup_id"] == "x"


class TestBackupIOError:
    """BackupIOError records the offending path."""

    def test_path_goes_into_details(self, tmp_path):
        error = BackupIOError("Cannot read", path=tmp_path / "a.db")

        assert error.path == str(tmp_path / "a.db")
        assert error.details["path"] == str(tmp_path / "a.db")

    def test_path_merges_with_details(self):
        error = BackupIOError("Cannot read", path="/x", details={"backup_id": "b"})
        assert error.details == {"backup_id": "b", "path": "/x"}

    def test_without_path(self):
        error = BackupIOError("Cannot read")
        assert error.path is None
        assert error.details == {}
