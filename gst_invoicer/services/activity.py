from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from gst_invoicer.models.audit import ActivityLog


def log_activity(
    db: Session,
    *,
    actor_user_id: Optional[int],
    activity_type: str,
    message: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ActivityLog:
    activity = ActivityLog(
        actor_user_id=actor_user_id,
        type=activity_type,
        message=message,
        payload_json=payload,
    )
    db.add(activity)
    db.flush()
    return activity
