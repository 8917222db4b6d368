"""Audit trail recorder.

Entries are append-only and carry a retention expiry. Deleting expired
entries is an explicit maintenance step (``purge_expired``); reads never
remove anything.
"""

import json
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from dateutil.relativedelta import relativedelta

from nzledger.config import LedgerConfig
from nzledger.database.base import Database
from nzledger.domain.clock import Clock, SystemClock, ensure_utc
from nzledger.domain.entities import AuditableRef, AuditEntry, EntityKind
from nzledger.domain.errors import DomainError, NotFoundError
from nzledger.logging_config import get_logger

logger = get_logger("domain.audit")

SECONDS_PER_YEAR = 365.2425 * 24 * 60 * 60


class AuditTrailRecorder:
    """Service for appending and querying audit entries."""

    def __init__(self, db: Database, config: LedgerConfig, clock: Optional[Clock] = None):
        """Initialize audit trail recorder.

        Args:
            db: Database instance
            config: Ledger configuration (retention period)
            clock: Clock used when no instant is given
        """
        self.db = db
        self.config = config
        self.clock = clock or SystemClock()
        self._lookups: dict[EntityKind, Callable[[int], Any]] = {
            EntityKind.FINANCIAL_TRANSACTION: db.get_transaction,
            EntityKind.ORGANIZATION: db.get_organization,
            EntityKind.TAX_FILING: db.get_tax_filing,
        }

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self.clock.now()

    def record(
        self,
        auditable: AuditableRef,
        action: str,
        changes: Optional[Mapping[str, Any]] = None,
        user_id: Optional[int] = None,
        remote_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuditEntry:
        """Append an audit entry.

        Args:
            auditable: Entity the entry is about
            action: Action name, e.g. ``financial_transaction_created``
            changes: Snapshot of the relevant fields
            user_id: Acting user, or None for system actions
            remote_address: Origin address; defaults to the configured one
            now: Creation instant; defaults to the recorder clock

        Returns:
            The stored entry, expiring after the retention period

        Raises:
            DomainError: If action is blank
        """
        if not action or not action.strip():
            raise DomainError("Audit action can't be blank")

        now = self._now(now)
        expires_at = now + relativedelta(years=self.config.audit_retention_years)
        audited_changes = json.dumps(dict(changes), sort_keys=True, default=str) if changes is not None else None

        entry_id = self.db.create_audit_entry(
            auditable_type=auditable.kind.value,
            auditable_id=auditable.id,
            action=action,
            audited_changes=audited_changes,
            user_id=user_id,
            remote_address=remote_address or self.config.default_remote_address,
            created_at=now,
            expires_at=expires_at,
        )
        return AuditEntry(
            id=entry_id,
            auditable=auditable,
            action=action,
            audited_changes=audited_changes,
            user_id=user_id,
            remote_address=remote_address or self.config.default_remote_address,
            created_at=now,
            expires_at=expires_at,
        )

    def get_entry(self, entry_id: int) -> AuditEntry:
        """Get audit entry by ID.

        Raises:
            NotFoundError: If the entry does not exist (or was purged)
        """
        entry = self.db.get_audit_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Audit entry {entry_id} not found")
        return entry

    def entries_for(self, auditable: AuditableRef, action: Optional[str] = None) -> list[AuditEntry]:
        """List entries for one entity, oldest first."""
        return self.db.list_audit_entries(entity_kind=auditable.kind, entity_id=auditable.id, action=action)

    def expired(self, now: Optional[datetime] = None) -> list[AuditEntry]:
        """Entries whose retention ended strictly before ``now``."""
        return self.db.list_audit_entries(expires_before=self._now(now))

    def for_retention(self, now: Optional[datetime] = None) -> list[AuditEntry]:
        """Entries still under retention (``expires_at >= now``)."""
        return self.db.list_audit_entries(expires_at_or_after=self._now(now))

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete entries with ``expires_at < now``. Returns the number deleted."""
        now = self._now(now)
        deleted = self.db.delete_audit_entries_expiring_before(now)
        logger.info("audit_entries_purged", extra={"deleted": deleted, "cutoff": now})
        return deleted

    @staticmethod
    def parsed_changes(entry: AuditEntry) -> dict[str, Any]:
        """Decode the change snapshot; malformed or missing data gives ``{}``."""
        if not entry.audited_changes:
            return {}
        try:
            parsed = json.loads(entry.audited_changes)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def retention_period_remaining(self, entry: AuditEntry, now: Optional[datetime] = None) -> float:
        """Years left before the entry may be purged (negative once expired)."""
        remaining = entry.expires_at - self._now(now)
        return round(remaining.total_seconds() / SECONDS_PER_YEAR, 2)

    def summary(self, entry: AuditEntry) -> dict[str, Any]:
        user = self.db.get_user(entry.user_id) if entry.user_id is not None else None
        return {
            "id": entry.id,
            "action": entry.action,
            "auditable": str(entry.auditable),
            "user": user.email if user is not None else "System",
            "timestamp": entry.created_at.isoformat(),
            "ip_address": entry.remote_address,
            "expires": entry.expires_at.isoformat(),
        }

    def resolve(self, auditable: AuditableRef) -> Any:
        """Load the entity an audit reference points at.

        Raises:
            NotFoundError: If the entity no longer exists
        """
        entity = self._lookups[auditable.kind](auditable.id)
        if entity is None:
            raise NotFoundError(f"Auditable {auditable} not found")
        return entity
