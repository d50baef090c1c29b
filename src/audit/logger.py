"""Relay audit trail: append-only JSON Lines with size-based rotation.

One line per relay task, callback, callback registration and auth decision,
so every message that reached (or failed to reach) the ledger is accounted for.
"""

from __future__ import annotations

import fcntl
import json
import os
from pathlib import Path

from src.models import AuditEvent


def read_audit_events(log_path: Path) -> list[AuditEvent]:
    """Load every event from the current (unrotated) audit file."""
    if not log_path.exists():
        return []
    return [
        AuditEvent.model_validate_json(line)
        for line in log_path.read_text().splitlines()
        if line.strip()
    ]


class AuditLogger:
    """Writes AuditEvents under an exclusive lock, rotating at ``max_bytes``."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        return cls(
            log_path=log_path,
            max_bytes=int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5")),
        )

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate_if_full(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        self._backup(self._backup_count).unlink(missing_ok=True)
        for i in range(self._backup_count - 1, 0, -1):
            if self._backup(i).exists():
                self._backup(i).rename(self._backup(i + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(
            json.loads(event.model_dump_json()), separators=(",", ":"),
        )

        lock_file = self.log_path.with_name(f".{self.log_path.name}.lock")
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._rotate_if_full()
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)
