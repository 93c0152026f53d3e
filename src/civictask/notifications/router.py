"""Notification feed endpoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from civictask.auth.dependencies import get_current_actor
from civictask.auth.schemas import Actor
from civictask.config import get_settings
from civictask.dependencies import get_issue_store
from civictask.notifications.feed import derive_notifications, unread_count
from civictask.store.base import IssueStore

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    read: bool
    priority: str
    issue_id: str
    timestamp: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


@router.get("/me/notifications", response_model=NotificationListResponse)
async def get_notifications(
    filter_: str = Query("all", alias="filter", pattern="^(all|unread|emergency|tasks)$"),
    actor: Actor = Depends(get_current_actor),
    store: IssueStore = Depends(get_issue_store),
):
    issues = await store.query_recent_issues_by_assignee(actor.uid, get_settings().notification_feed_limit)
    feed = derive_notifications(issues)
    visible = derive_notifications(issues, filter_) if filter_ != "all" else feed
    return NotificationListResponse(
        notifications=[NotificationResponse(**n) for n in visible],
        unread_count=unread_count(feed),
    )
