from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qtrack.api.deps import get_db
from qtrack.core.security import require_cron_key
from qtrack.tasks.deadline_tasks import notify_overdue_questions

router = APIRouter()


@router.post("/check-deadlines", dependencies=[Depends(require_cron_key)])
def check_deadlines(db: Session = Depends(get_db)) -> dict:
    return notify_overdue_questions(db)
