"""
通知记录存储

每个操作使用独立的数据库会话并在结束时提交，不同通知记录之间没有跨记录事务。
"""

import logging
from typing import Dict, Any, List, Optional

from shared.models.base import utcnow
from shared.models.notification import (
    Notification, NotificationChannel, NotificationStatus,
    STATUS_TRANSITIONS, READABLE_STATUSES
)
from ..database.connection import DatabaseManager
from ..database.repositories import NotificationRepository
from .exceptions import InvalidStatusTransition


logger = logging.getLogger(__name__)


class NotificationStore:
    """通知记录存储"""

    def __init__(self, db: DatabaseManager):
        self._db = db

    async def create(self, data: Dict[str, Any]) -> int:
        """
        创建 pending 状态的通知记录

        Args:
            data: recipient_id, channel, title, message, payload, template_name

        Returns:
            int: 通知ID
        """
        fields = {
            "recipient_id": data["recipient_id"],
            "channel": NotificationChannel(data["channel"]),
            "title": data.get("title") or "",
            "message": data.get("message") or "",
            "payload": data.get("payload") or {},
            "template_name": data.get("template_name"),
            "status": NotificationStatus.PENDING,
        }
        async with self._db.get_async_session() as session:
            notification = await NotificationRepository(session).create(fields)
            notification_id = notification.id

        logger.debug(f"通知记录已创建: {notification_id}, 渠道: {fields['channel'].value}")
        return notification_id

    async def get(self, notification_id: int) -> Optional[Notification]:
        """获取通知记录"""
        async with self._db.get_async_session() as session:
            return await NotificationRepository(session).get_by_id(notification_id)

    async def update_status(self, notification_id: int, status: NotificationStatus,
                            error_message: Optional[str] = None) -> None:
        """
        更新通知状态，并写入与新状态对应的时间戳

        Raises:
            LookupError: 记录不存在
            InvalidStatusTransition: 状态流转不合法
        """
        status = NotificationStatus(status)
        now = utcnow()

        async with self._db.get_async_session() as session:
            repo = NotificationRepository(session)
            notification = await repo.get_by_id(notification_id)
            if notification is None:
                raise LookupError(f"notification {notification_id} not found")

            current = NotificationStatus(notification.status)
            if status not in STATUS_TRANSITIONS[current]:
                raise InvalidStatusTransition(notification_id, current, status)

            notification.status = status
            if status == NotificationStatus.SENT:
                notification.sent_at = now
            elif status == NotificationStatus.DELIVERED:
                # pending 直接到 delivered 时隐含一次 sent
                if notification.sent_at is None:
                    notification.sent_at = now
                notification.delivered_at = now
            elif status == NotificationStatus.READ:
                notification.read_at = now

            if error_message:
                notification.error_message = error_message

            await repo.save(notification)

        logger.debug(f"通知状态已更新: {notification_id}, {current.value} -> {status.value}")

    async def mark_read(self, notification_id: int, recipient_id: int) -> bool:
        """
        标记通知为已读

        已读的记录再次标记时直接返回True，不修改 read_at。

        Returns:
            bool: 记录不存在、不属于该用户或尚未送达时返回False
        """
        async with self._db.get_async_session() as session:
            repo = NotificationRepository(session)
            notification = await repo.get_by_id(notification_id)
            if notification is None or notification.recipient_id != recipient_id:
                return False

            status = NotificationStatus(notification.status)
            if status == NotificationStatus.READ:
                return True
            if status not in READABLE_STATUSES:
                return False

            now = utcnow()
            notification.status = NotificationStatus.READ
            notification.read_at = now
            await repo.save(notification)
            return True

    async def mark_all_read(self, recipient_id: int) -> int:
        """将用户所有已发送或已送达的通知标记为已读，返回更新数量"""
        async with self._db.get_async_session() as session:
            return await NotificationRepository(session).mark_all_read(recipient_id, utcnow())

    async def list_for_user(self, recipient_id: int, channel: Optional[NotificationChannel] = None,
                            limit: int = 50, offset: int = 0) -> List[Notification]:
        """按创建时间倒序列出用户的通知"""
        if channel is not None:
            channel = NotificationChannel(channel)
        async with self._db.get_async_session() as session:
            return await NotificationRepository(session).get_by_user(
                recipient_id, channel=channel, skip=offset, limit=limit
            )

    async def unread_count(self, recipient_id: int) -> int:
        """未读数量（status != read 的记录数）"""
        async with self._db.get_async_session() as session:
            return await NotificationRepository(session).count_unread(recipient_id)
