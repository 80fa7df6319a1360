"""Tests for the audit trail."""
import logging

import pytest

from rac_console.utils.audit_log import (
    ChangeRecord,
    ChangeTracker,
    audit_logger,
    get_recent_changes,
    redact,
    setup_audit_logging,
)


@pytest.fixture
def audit_dir(tmp_path):
    setup_audit_logging(str(tmp_path))
    yield tmp_path
    for handler in list(audit_logger.handlers):
        handler.close()
        audit_logger.removeHandler(handler)
    audit_logger.propagate = True
    audit_logger.setLevel(logging.NOTSET)


class TestRedact:
    """Tests for secret redaction."""

    def test_secrets_masked(self):
        result = redact({"name": "op", "password": "pw", "snmp_string": "public"})
        assert result == {"name": "op", "password": "***", "snmp_string": "***"}

    def test_absent_secret_left_as_none(self):
        assert redact({"snmp_string": None}) == {"snmp_string": None}


class TestChangeTracker:
    """Tests for ChangeTracker and reading records back."""

    def test_record_round_trip(self):
        record = ChangeRecord(
            timestamp="2026-01-01T00:00:00+00:00",
            console="lab-cmc",
            operation="set_user",
            target="index 3",
            success=True,
            parameters={"name": "op"},
        )
        assert ChangeRecord.from_json(record.to_json()) == record

    def test_log_and_read_back(self, audit_dir):
        tracker = ChangeTracker("lab-cmc")
        tracker.log_change("set_user", "index 3", {"name": "op", "password": "pw"}, True)
        tracker.log_change("set_root_credentials", "server-1", {"password": "calvin"}, False,
                           output="ERROR: Server not present")

        records = get_recent_changes(str(audit_dir / "audit.log"))

        assert [r.operation for r in records] == ["set_root_credentials", "set_user"]
        assert records[1].parameters == {"name": "op", "password": "***"}
        assert records[0].success is False

    def test_filters_and_limit(self, audit_dir):
        tracker = ChangeTracker("lab-cmc")
        for index in range(1, 4):
            tracker.log_change("set_user", f"index {index}", {}, True)
        ChangeTracker("other-cmc").log_change("set_user", "index 9", {}, True)

        log_file = str(audit_dir / "audit.log")
        assert len(get_recent_changes(log_file, console="lab-cmc")) == 3
        assert get_recent_changes(log_file, operation="set_root_credentials") == []
        latest = get_recent_changes(log_file, limit=1)
        assert [r.target for r in latest] == ["index 9"]

    def test_output_truncated(self, audit_dir):
        record = ChangeTracker("lab-cmc").log_change("set_root_credentials", "server-1", {}, True,
                                                     output="x" * 5000)
        assert len(record.output) == 1000

    def test_missing_log_file(self, tmp_path):
        assert get_recent_changes(str(tmp_path / "nope.log")) == []

    def test_malformed_lines_skipped(self, tmp_path):
        log_file = tmp_path / "audit.log"
        log_file.write_text("not json\n\n{\"unexpected\": 1}\n")
        assert get_recent_changes(str(log_file)) == []
