from __future__ import annotations

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import Session

from qtrack.core.errors import ValidationFailed

MAX_LIMIT = 200


def keyset_page(db: Session, stmt: Select, model, *, cursor: str | None, limit: int) -> tuple[list, str | None]:
    """Newest-first page of ``stmt`` after the row whose id is ``cursor``.

    ``model`` must have ``id`` and ``created_at`` columns. Returns the rows and
    the cursor for the next page (None on the last page).
    """

    if limit < 1:
        raise ValidationFailed("limit must be positive")
    limit = min(limit, MAX_LIMIT)

    if cursor:
        anchor = db.get(model, cursor)
        if anchor is None:
            raise ValidationFailed("Invalid cursor")
        stmt = stmt.where(
            or_(
                model.created_at < anchor.created_at,
                and_(model.created_at == anchor.created_at, model.id < anchor.id),
            )
        )

    rows = list(db.execute(stmt.order_by(model.created_at.desc(), model.id.desc()).limit(limit)).scalars().all())
    next_cursor = rows[-1].id if len(rows) == limit else None
    return rows, next_cursor
