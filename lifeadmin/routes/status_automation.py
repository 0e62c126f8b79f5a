"""
Ops endpoints for the notification sweeps
Manual triggers and counters, guarded by the shared X-Ops-Key header
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..domain.notifications import NotificationRepository
from ..models import Notification, NotificationType
from ..services.scheduler import NotificationScheduler, UnknownSweeperError
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ops/notifications", tags=["ops"])


class SweepRunResult(BaseModel):
    results: dict


class SingleSweepResult(BaseModel):
    name: str
    result: dict


class SweeperList(BaseModel):
    sweepers: list[str]


class NotificationCount(BaseModel):
    user_id: Optional[int] = None
    total: int
    unread: int


class SampleEmailRequest(BaseModel):
    to: str
    title: str = "Test Notification"
    message: str = "This is a test notification from LIA Admin. If you received it, email delivery works."
    type: NotificationType = NotificationType.GENERAL

    @field_validator("to")
    @classmethod
    def validate_to(cls, v):
        return validate_email(v)


class SampleEmailResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


async def require_ops_key(x_ops_key: Optional[str] = Header(None)):
    """Reject the call unless X-Ops-Key matches OPS_API_KEY"""
    if not config.OPS_API_KEY:
        raise HTTPException(status_code=503, detail="Ops endpoints are disabled (OPS_API_KEY not set)")
    if x_ops_key != config.OPS_API_KEY:
        logger.warning("⚠️ Ops endpoint called with a missing or invalid X-Ops-Key")
        raise HTTPException(status_code=401, detail="Invalid ops key")


def get_scheduler(request: Request) -> NotificationScheduler:
    """The app's scheduler; created once and kept on app.state when none was started"""
    state = request.app.state
    scheduler = getattr(state, "notification_scheduler", None)
    if scheduler is None:
        # Not started: only used for manual runs, but its locks must be shared across requests
        scheduler = state.notification_scheduler = NotificationScheduler()
    return scheduler


def get_email_sender():
    from ..email_service import send_email_notification

    return send_email_notification


@router.post("/run", response_model=SweepRunResult, dependencies=[Depends(require_ops_key)])
async def run_all_sweeps(scheduler: NotificationScheduler = Depends(get_scheduler)):
    """Run every notification sweep once"""
    logger.info("🔔 Manual notification check triggered")
    return SweepRunResult(results=await scheduler.trigger_now())


@router.get("/sweeps", response_model=SweeperList, dependencies=[Depends(require_ops_key)])
async def list_sweeps(scheduler: NotificationScheduler = Depends(get_scheduler)):
    return SweeperList(sweepers=sorted(scheduler.sweepers))


@router.post(
    "/sweeps/{name}", response_model=SingleSweepResult, dependencies=[Depends(require_ops_key)]
)
async def run_single_sweep(name: str, scheduler: NotificationScheduler = Depends(get_scheduler)):
    """Run one sweeper by name"""
    try:
        result = await scheduler.run_sweeper(name)
    except UnknownSweeperError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SingleSweepResult(name=name, result=result)


@router.get("/count", response_model=NotificationCount, dependencies=[Depends(require_ops_key)])
async def count_notifications(user_id: Optional[int] = None, db: Session = Depends(get_db)):
    """Total and unread notification counts, optionally for one user"""
    return NotificationCount(
        user_id=user_id,
        total=NotificationRepository.count_notifications(db, user_id=user_id),
        unread=NotificationRepository.count_notifications(db, user_id=user_id, unread_only=True),
    )


@router.post("/test-email", response_model=SampleEmailResult, dependencies=[Depends(require_ops_key)])
async def send_test_email(payload: SampleEmailRequest, send_email=Depends(get_email_sender)):
    """Render and send a sample notification email; nothing is stored"""
    sample = Notification(
        type=payload.type.value,
        title=payload.title,
        message=payload.message,
        created_at=datetime.now(),
    )
    result = await send_email(payload.to, sample)
    return SampleEmailResult(**result)
