"""数据访问层仓库类"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.notification import (
    Notification, NotificationChannel, NotificationStatus, READABLE_STATUSES
)
from shared.models.settings import SystemSetting, EmailTemplate
from shared.models.user import User


class BaseRepository:
    """基础仓库类"""

    def __init__(self, session: AsyncSession):
        self.session = session


class NotificationRepository(BaseRepository):
    """通知记录仓库类"""

    async def create(self, notification_data: Dict[str, Any]) -> Notification:
        """创建通知记录"""
        notification = Notification(**notification_data)
        self.session.add(notification)
        # 刷新但不提交
        await self.session.flush()
        return notification

    async def get_by_id(self, notification_id: int) -> Optional[Notification]:
        """根据ID获取通知"""
        stmt = select(Notification).where(Notification.id == notification_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_user(
        self,
        recipient_id: int,
        channel: Optional[NotificationChannel] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Notification]:
        """获取用户的通知（按创建时间倒序）"""
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if channel is not None:
            stmt = stmt.where(Notification.channel == channel)
        stmt = (stmt
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset(skip)
                .limit(limit))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, notification: Notification) -> Notification:
        """保存对已加载记录的修改"""
        await self.session.flush()
        return notification

    async def count_unread(self, recipient_id: int) -> int:
        """统计用户未读通知数量"""
        stmt = select(func.count(Notification.id)).where(
            Notification.recipient_id == recipient_id,
            Notification.status != NotificationStatus.READ
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def mark_all_read(self, recipient_id: int, read_at: datetime) -> int:
        """将用户所有可读通知标记为已读"""
        stmt = (update(Notification)
                .where(
                    Notification.recipient_id == recipient_id,
                    Notification.status.in_(READABLE_STATUSES)
                )
                .values(status=NotificationStatus.READ, read_at=read_at, updated_at=read_at)
                .execution_options(synchronize_session=False))
        result = await self.session.execute(stmt)
        return result.rowcount or 0


class SystemSettingRepository(BaseRepository):
    """系统配置仓库类"""

    async def get_category(self, category: str) -> Dict[str, str]:
        """获取某个分类下的全部配置"""
        stmt = select(SystemSetting.key, SystemSetting.value).where(
            SystemSetting.category == category
        )
        result = await self.session.execute(stmt)
        return {key: value for key, value in result.all()}

    async def get_value(self, category: str, key: str) -> Optional[str]:
        """获取单个配置值"""
        stmt = select(SystemSetting.value).where(
            SystemSetting.category == category,
            SystemSetting.key == key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_value(self, category: str, key: str, value: str,
                        description: str = None, is_encrypted: bool = False) -> SystemSetting:
        """写入配置值，已存在则更新"""
        stmt = select(SystemSetting).where(
            SystemSetting.category == category,
            SystemSetting.key == key
        )
        result = await self.session.execute(stmt)
        setting = result.scalar_one_or_none()

        if setting is None:
            setting = SystemSetting(
                category=category,
                key=key,
                value=value,
                description=description,
                is_encrypted=is_encrypted
            )
            self.session.add(setting)
        else:
            setting.value = value

        await self.session.flush()
        return setting

    async def ensure_defaults(self, category: str, defaults: List[Dict[str, Any]]) -> int:
        """写入缺失的默认配置，返回新增数量"""
        existing = await self.get_category(category)
        created = 0

        for item in defaults:
            if item["key"] in existing:
                continue
            self.session.add(SystemSetting(
                category=category,
                key=item["key"],
                value=item.get("value", ""),
                description=item.get("description"),
                is_encrypted=item.get("is_encrypted", False)
            ))
            created += 1

        await self.session.flush()
        return created


class EmailTemplateRepository(BaseRepository):
    """邮件模板仓库类"""

    async def get_active(self, name: str) -> Optional[EmailTemplate]:
        """获取启用中的模板"""
        stmt = select(EmailTemplate).where(
            EmailTemplate.name == name,
            EmailTemplate.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class UserDirectoryRepository(BaseRepository):
    """收件人查询（users 表只读）"""

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """根据ID获取用户"""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
