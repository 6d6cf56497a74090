"""数据模型包"""

from .base import Base, BaseModel
from .user import User
from .notification import (
    Notification, NotificationChannel, NotificationStatus,
    NotificationEvent, NotificationResponse
)
from .settings import SystemSetting, EmailTemplate, DEFAULT_SETTINGS

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Notification",
    "NotificationChannel",
    "NotificationStatus",
    "NotificationEvent",
    "NotificationResponse",
    "SystemSetting",
    "EmailTemplate",
    "DEFAULT_SETTINGS",
]
