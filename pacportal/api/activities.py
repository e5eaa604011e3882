"""System activity (audit trail) endpoints - admin only"""
import math
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from pacportal.api.deps import require_admin_access
from pacportal.database import get_db
from pacportal.models.profile import Profile
from pacportal.models.system_activity import SystemActivity
from pacportal.schemas.activity import ActivityPage, ActivityStats, Pagination
from pacportal.schemas.auth import IdentityRef

router = APIRouter(prefix="/admin/activities", tags=["activities"])

DATE_RANGES = ("today", "week", "month")


def _range_start(date_range: str, now: datetime) -> datetime:
    if date_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == "week":
        return now - timedelta(days=7)
    return now - timedelta(days=30)


@router.get("", response_model=ActivityPage)
def list_activities(
    action_type: Optional[str] = Query(None, description="Filter by action type ('all' = no filter)"),
    search: Optional[str] = Query(None, description="Match description or author name"),
    date_range: Optional[str] = Query(None, description="today | week | month | all"),
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    db: Session = Depends(get_db),
    _: IdentityRef = Depends(require_admin_access),
):
    """
    Query the activity trail, newest first (Admin).
    """
    query = db.query(SystemActivity).outerjoin(Profile, SystemActivity.user_id == Profile.id)

    if action_type and action_type != "all":
        query = query.filter(SystemActivity.action_type == action_type)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(SystemActivity.description).like(pattern),
            func.lower(Profile.full_name).like(pattern),
        ))
    if date_range and date_range != "all":
        if date_range not in DATE_RANGES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="date_range must be one of: today, week, month, all",
            )
        query = query.filter(SystemActivity.created_at >= _range_start(date_range, datetime.utcnow()))

    total = query.count()
    rows = (
        query.options(joinedload(SystemActivity.user))
        .order_by(SystemActivity.created_at.desc(), SystemActivity.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return ActivityPage(
        data=rows,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 1,
        ),
    )


@router.get("/stats", response_model=ActivityStats)
def activity_stats(
    db: Session = Depends(get_db),
    _: IdentityRef = Depends(require_admin_access),
):
    """Counts for today / last 7 days / last 30 days, plus totals per action type (Admin)."""
    now = datetime.utcnow()

    def _count_since(start: datetime) -> int:
        return db.query(SystemActivity).filter(SystemActivity.created_at >= start).count()

    by_type = dict(
        db.query(SystemActivity.action_type, func.count(SystemActivity.id))
        .group_by(SystemActivity.action_type)
        .all()
    )

    return ActivityStats(
        total=db.query(SystemActivity).count(),
        today=_count_since(_range_start("today", now)),
        week=_count_since(_range_start("week", now)),
        month=_count_since(_range_start("month", now)),
        by_type=by_type,
    )


@router.get("/types", response_model=List[str])
def activity_types(
    db: Session = Depends(get_db),
    _: IdentityRef = Depends(require_admin_access),
):
    """Distinct action types, sorted (Admin)."""
    rows = db.query(SystemActivity.action_type).distinct().all()
    return sorted(row[0] for row in rows if row[0])
