"""Tests for job error classification."""

import pytest

from cooked.core.db_client import DatabaseError, DuplicateRecordError, RecordNotFoundError
from cooked.core.errors import ErrorCode, ErrorSeverity, classify_job_error


@pytest.mark.unit
class TestClassifyJobError:
    def test_duplicate_record(self):
        error = classify_job_error(DuplicateRecordError("UNIQUE constraint failed: check_ins"))

        assert error.code == ErrorCode.ERR_DUPLICATE_RECORD
        assert error.severity == ErrorSeverity.LOW

    def test_duplicate_wins_over_database_error(self):
        # DuplicateRecordError is also a DatabaseError
        error = classify_job_error(DuplicateRecordError("duplicate"))

        assert error.code != ErrorCode.ERR_DATABASE

    def test_record_not_found(self):
        error = classify_job_error(RecordNotFoundError("Record not found in users: 7"))

        assert error.code == ErrorCode.ERR_RECORD_NOT_FOUND
        assert error.severity == ErrorSeverity.MEDIUM

    def test_value_error(self):
        error = classify_job_error(ValueError("week_start must be a Monday"))

        assert error.code == ErrorCode.ERR_INVALID_RECORD
        assert "Monday" in error.message

    @pytest.mark.parametrize(
        "exception",
        [
            ConnectionError("reset by peer"),
            TimeoutError("read timed out"),
            RuntimeError("503 Service Unavailable"),
        ],
    )
    def test_network_errors(self, exception):
        error = classify_job_error(exception)

        assert error.code == ErrorCode.ERR_NETWORK_ERROR

    def test_database_error(self):
        error = classify_job_error(DatabaseError("disk I/O error"))

        assert error.code == ErrorCode.ERR_DATABASE
        assert error.severity == ErrorSeverity.HIGH

    def test_unknown_error_without_message(self):
        error = classify_job_error(KeyError())

        assert error.code == ErrorCode.ERR_UNKNOWN
        assert error.message == "KeyError"
