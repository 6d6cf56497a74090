"""通知相关数据模型"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Enum as SQLEnum, Index
from pydantic import BaseModel, Field, field_validator

from .base import BaseModel as DBBaseModel, BaseSchema


class NotificationChannel(str, Enum):
    """通知渠道枚举"""
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in_app"


class NotificationStatus(str, Enum):
    """通知状态枚举"""
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    READ = "read"


# 合法的状态流转，failed 和 read 为终态
STATUS_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.DELIVERED,
        NotificationStatus.FAILED,
    },
    NotificationStatus.SENT: {NotificationStatus.DELIVERED, NotificationStatus.READ},
    NotificationStatus.DELIVERED: {NotificationStatus.READ},
    NotificationStatus.FAILED: set(),
    NotificationStatus.READ: set(),
}

# 可以被标记为已读的状态
READABLE_STATUSES = (NotificationStatus.SENT, NotificationStatus.DELIVERED)

# 视为发送成功的状态
SUCCESS_STATUSES = (NotificationStatus.SENT, NotificationStatus.DELIVERED)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Notification(DBBaseModel):
    """通知记录模型

    每次 notify() 调用创建一条记录，之后最多被修改两次（投递结果、已读确认）。
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_status", "user_id", "status"),
    )

    recipient_id = Column("user_id", Integer, nullable=False, index=True)
    channel = Column(
        "type",
        SQLEnum(NotificationChannel, values_callable=_enum_values, native_enum=False, length=16),
        nullable=False
    )
    title = Column(String(255), nullable=False, default="")
    message = Column(Text, nullable=False, default="")
    payload = Column("data", JSON, nullable=True)
    template_name = Column(String(100), nullable=True)
    status = Column(
        SQLEnum(NotificationStatus, values_callable=_enum_values, native_enum=False, length=16),
        nullable=False,
        default=NotificationStatus.PENDING
    )
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Notification id={self.id} user={self.recipient_id} "
            f"channel={self.channel} status={self.status}>"
        )


# Pydantic模型

class NotificationEvent(BaseModel):
    """通知事件，notify() 的输入"""
    recipient_id: Optional[int] = None
    channel: Optional[NotificationChannel] = None
    title: str = ""
    message: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)
    template_name: Optional[str] = None

    @field_validator("payload", mode="before")
    @classmethod
    def default_payload(cls, v):
        """payload 为空时使用空字典"""
        return v if v is not None else {}


class NotificationResponse(BaseSchema):
    """通知响应模型"""
    recipient_id: int
    channel: NotificationChannel
    title: str
    message: str
    payload: Optional[Dict[str, Any]] = None
    template_name: Optional[str] = None
    status: NotificationStatus
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    error_message: Optional[str] = None


class UnreadCountResponse(BaseModel):
    """未读数量响应模型"""
    unread_count: int


class MarkAllReadResponse(BaseModel):
    """全部标记已读响应模型"""
    updated: int
