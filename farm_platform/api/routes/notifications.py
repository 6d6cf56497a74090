"""
通知API端点

当前用户的通知列表、未读数量和已读标记。
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from shared.models.notification import (
    NotificationChannel, NotificationResponse, UnreadCountResponse, MarkAllReadResponse
)
from shared.models.user import User
from ..dependencies import get_current_user, get_notification_store
from ...notifications.store import NotificationStore

router = APIRouter(prefix="/notifications", tags=["通知"])
logger = structlog.get_logger()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    channel: Optional[NotificationChannel] = Query(None, description="按渠道过滤"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store)
):
    """获取当前用户的通知（按创建时间倒序）"""
    notifications = await store.list_for_user(
        current_user.id, channel=channel, limit=limit, offset=offset
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store)
):
    """获取未读通知数量"""
    return UnreadCountResponse(unread_count=await store.unread_count(current_user.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store)
):
    """将所有通知标记为已读"""
    updated = await store.mark_all_read(current_user.id)
    logger.info("notifications_marked_read", user_id=current_user.id, updated=updated)
    return MarkAllReadResponse(updated=updated)


@router.put("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    store: NotificationStore = Depends(get_notification_store)
):
    """标记单条通知为已读"""
    if not await store.mark_read(notification_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
