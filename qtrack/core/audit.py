from __future__ import annotations

from sqlalchemy.orm import Session

from qtrack.models.tables import AuditLog
from qtrack.util.ids import new_uuid
from qtrack.util.time import now_utc


def audit(
    db: Session,
    *,
    user_id: str | None,
    event_type: str,
    message: str,
    context: dict,
    severity: str = "INFO",
) -> None:
    """Stage an audit row in the caller's transaction (committed with it)."""
    db.add(
        AuditLog(
            id=new_uuid(),
            user_id=user_id,
            event_type=event_type,
            severity=severity,
            message=message,
            context=context or {},
            created_at=now_utc(),
        )
    )
