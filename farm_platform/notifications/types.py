"""
通知系统类型定义
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional

from shared.models.notification import (
    NotificationChannel, NotificationStatus, NotificationEvent, SUCCESS_STATUSES
)


class NotificationEventType(Enum):
    """业务事件类型

    value 为 notifications 分类下对应的邮件开关键，template 为默认邮件模板名。
    """
    PAYMENT_SUCCESS = ("payment_success_email", "payment_success")
    PAYMENT_FAILED = ("payment_failed_email", "payment_failed")
    SUBSCRIPTION_RENEWAL = ("subscription_renewal_email", "subscription_renewal")
    SUBSCRIPTION_EXPIRY = ("subscription_expiry_email", "subscription_expiry_warning")

    def __init__(self, toggle_key: str, template: str):
        self.toggle_key = toggle_key
        self.template = template


@dataclass(frozen=True)
class DeliveryOutcome:
    """渠道投递结果"""
    status: NotificationStatus
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @classmethod
    def delivered(cls) -> "DeliveryOutcome":
        return cls(NotificationStatus.DELIVERED)

    @classmethod
    def failed(cls, error: str) -> "DeliveryOutcome":
        return cls(NotificationStatus.FAILED, error)


@dataclass
class EmailMessage:
    """待发送的邮件"""
    to: str
    subject: str
    html: str
    text: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SendResult:
    """一次SMTP发送的结果，发送成功时为真值"""
    success: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


__all__ = [
    "NotificationChannel",
    "NotificationStatus",
    "NotificationEvent",
    "NotificationEventType",
    "DeliveryOutcome",
    "EmailMessage",
    "SendResult",
]
