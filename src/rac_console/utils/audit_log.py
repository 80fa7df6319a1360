"""Audit logging for configuration changes pushed to the console.

Every user provisioning step and credential deploy is written as one JSON
record per line to a dedicated audit file. Secrets are redacted before the
record is built.
"""
import json
import logging
import os
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("rac_console.audit")

REDACTED = "***"
SECRET_KEYS = {"password", "community_string", "snmp_string"}


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.rac-console/
    """
    if log_dir is None:
        log_dir = os.path.expanduser("~/.rac-console")

    Path(log_dir).mkdir(parents=True, exist_ok=True)

    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Keep JSON records out of the operator console
    audit_logger.propagate = False


def redact(parameters: dict) -> dict:
    """Copy of ``parameters`` with secret values masked."""
    return {
        key: (REDACTED if key in SECRET_KEYS and value is not None else value)
        for key, value in parameters.items()
    }


@dataclass
class ChangeRecord:
    """Record of a configuration change."""
    timestamp: str
    console: str
    operation: str  # set_user, set_root_credentials, set_network_interface
    target: str
    success: bool
    parameters: dict
    output: str = ""
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        data = json.loads(json_str)
        return cls(**data)


class ChangeTracker:
    """Track and log configuration changes made on one console."""

    def __init__(self, console: str):
        self.console = console

    def log_change(
        self,
        operation: str,
        target: str,
        parameters: dict,
        success: bool,
        output: str = "",
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """Log a configuration change.

        Args:
            operation: The operation performed (e.g., "set_user")
            target: What was changed (user index, module name)
            parameters: Parameters passed to the operation (secrets redacted here)
            success: Whether the console reported success
            output: Console output
            error: Error message if failed

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            console=self.console,
            operation=operation,
            target=target,
            success=success,
            parameters=redact(parameters),
            output=output[:1000] if output else "",  # Truncate long output
            error=error,
        )

        audit_logger.info(record.to_json())

        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    console: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.rac-console/audit.log
        console: Filter by console host
        operation: Filter by operation type
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.expanduser("~/.rac-console/audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if console and record.console != console:
                continue
            if operation and record.operation != operation:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
