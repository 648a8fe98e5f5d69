"""
Audit service.

Writes an AuditLog row inside the caller's unit of work, so the
audit entry commits or rolls back together with the change it
describes. Snapshots are JSON text of the row's column values.
"""

import enum
import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from branch_finance.models.audit_log import AuditLog
from branch_finance.services.permissions import Actor

# Never copied into an audit snapshot.
_REDACTED_COLUMNS = frozenset(("password_hash", "token"))


@dataclass(frozen=True)
class RequestMeta:
    """Caller details recorded alongside each change."""
    ip_address: str | None = None
    user_agent: str | None = None


def _json_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def snapshot(instance) -> dict:
    """Column values of a mapped instance, JSON-ready."""
    mapper = inspect(instance).mapper
    return {
        column.key: _json_value(getattr(instance, column.key))
        for column in mapper.column_attrs
        if column.key not in _REDACTED_COLUMNS
    }


class AuditService:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor: Actor,
        action: str,
        table_name: str,
        record_id,
        old_values: dict | None = None,
        new_values: dict | None = None,
        meta: RequestMeta | None = None,
    ) -> AuditLog:
        meta = meta or RequestMeta()
        entry = AuditLog(
            user_id=actor.id,
            username=actor.username,
            action=action,
            table_name=table_name,
            record_id=str(record_id),
            old_values=json.dumps(old_values) if old_values is not None else None,
            new_values=json.dumps(new_values) if new_values is not None else None,
            ip_address=meta.ip_address,
            user_agent=(meta.user_agent or "")[:255] or None,
        )
        self.db.add(entry)
        return entry
