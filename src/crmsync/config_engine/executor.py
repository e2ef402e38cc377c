"""Executor for applying configuration updates to the cluster.

Each update is written to an exclusively owned temporary file and handed
to `crm configure load update` in one call. The file is removed on every
exit path.
"""
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..utils.command import CommandError, CrmShell
from .schema import ConfigurationUpdate

logger = logging.getLogger(__name__)


class FlushError(CommandError):
    """crm rejected a configuration update; nothing was applied by us."""

    @classmethod
    def from_command_error(cls, error: CommandError) -> "FlushError":
        return cls(error.command, error.exit_status, error.stdout, error.stderr)


@dataclass
class AuditEntry:
    """Audit log entry for an applied update."""
    timestamp: datetime
    primitive: str
    operation: str
    cib: Optional[str] = None
    success: bool = False
    statements: list[str] = field(default_factory=list)
    error: Optional[str] = None


class ConfigExecutor:
    """Apply configuration updates through the crm shell."""

    def __init__(
        self,
        shell: CrmShell,
        tempfile_prefix: str = "crmsync_update",
        audit_log_path: Optional[str] = None,
    ):
        """
        Initialize executor.

        Args:
            shell: crm shell wrapper
            tempfile_prefix: Prefix for the staging file name
            audit_log_path: Path to JSON-lines audit log (optional)
        """
        self.shell = shell
        self.tempfile_prefix = tempfile_prefix
        self.audit_log_path = audit_log_path

    def apply(self, update: ConfigurationUpdate, cib: Optional[str] = None) -> None:
        """
        Apply an update as a single transaction.

        Args:
            update: Rendered statements for one primitive
            cib: Configuration shadow to load into (optional)

        Raises:
            FlushError: If crm rejects the update
        """
        entry = AuditEntry(
            timestamp=datetime.now(timezone.utc),
            primitive=update.primitive,
            operation="load_update",
            cib=cib,
            statements=update.text.splitlines(),
        )

        fd, path = tempfile.mkstemp(prefix=f"{self.tempfile_prefix}_", suffix=".crm")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(update.text)

            logger.info(
                f"Loading update for {update.primitive}"
                f"{f' into shadow {cib}' if cib else ''}"
            )
            logger.debug(f"Update text:\n{update.text}")

            try:
                self.shell.load_update(path, cib)
            except CommandError as e:
                entry.error = str(e)
                raise FlushError.from_command_error(e) from e

            entry.success = True
        finally:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            self._write_audit(entry)

    def _write_audit(self, entry: AuditEntry) -> None:
        """Append an audit entry to the log file."""
        if not self.audit_log_path:
            return

        try:
            log_path = Path(self.audit_log_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            log_entry = {
                "timestamp": entry.timestamp.isoformat(),
                "primitive": entry.primitive,
                "operation": entry.operation,
                "cib": entry.cib,
                "success": entry.success,
                "statements": entry.statements,
                "error": entry.error,
            }

            with open(log_path, "a") as f:
                f.write(json.dumps(log_entry) + "\n")

        except OSError as e:
            logger.warning(f"Failed to write audit log: {e}")
