"""
通知渠道分发器

每个渠道一个分发器，统一实现 deliver(record, template_name) -> DeliveryOutcome。
分发器内部的 NotificationError 会被转换为 failed 结果，不会向上抛出。
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from markupsafe import escape

from shared.models.notification import Notification, NotificationChannel
from shared.models.user import User
from ..database.connection import DatabaseManager
from ..database.repositories import UserDirectoryRepository
from .email import EmailTransport
from .exceptions import ConfigurationError, NotificationError
from .gate import ConfigurationGate
from .templates import TemplateResolver
from .types import DeliveryOutcome, EmailMessage


logger = logging.getLogger(__name__)

CHANNEL_DISABLED = "channel disabled"
RECIPIENT_NOT_FOUND = "recipient not found"
SIGNATURE = "El equipo de Café Colombia"


class ChannelDispatcher(ABC):
    """渠道分发器基类"""

    channel: NotificationChannel

    def __init__(self, gate: ConfigurationGate):
        self.gate = gate

    async def deliver(self, record: Notification, template_name: Optional[str] = None) -> DeliveryOutcome:
        """
        投递通知

        Args:
            record: 通知记录（pending 状态）
            template_name: 邮件模板名称，只有邮件渠道使用

        Returns:
            DeliveryOutcome: 投递结果
        """
        try:
            return await self._deliver(record, template_name)
        except NotificationError as e:
            logger.warning(f"{self.channel.value} 通知投递失败: {record.id}, 错误: {e}")
            return DeliveryOutcome.failed(str(e))

    @abstractmethod
    async def _deliver(self, record: Notification, template_name: Optional[str]) -> DeliveryOutcome:
        """渠道相关的投递逻辑"""
        pass

    async def require_enabled(self) -> None:
        """渠道未启用时抛出 ConfigurationError"""
        if not await self.gate.get_channel_enabled(self.channel):
            raise ConfigurationError(CHANNEL_DISABLED)


class EmailDispatcher(ChannelDispatcher):
    """邮件分发器"""

    channel = NotificationChannel.EMAIL

    def __init__(self, gate: ConfigurationGate, transport: EmailTransport,
                 resolver: TemplateResolver, db: DatabaseManager):
        super().__init__(gate)
        self.transport = transport
        self.resolver = resolver
        self._db = db

    async def _deliver(self, record: Notification, template_name: Optional[str]) -> DeliveryOutcome:
        await self.require_enabled()

        user = await self._get_recipient(record.recipient_id)
        if user is None or not user.contact_email:
            return DeliveryOutcome.failed(RECIPIENT_NOT_FOUND)

        template_name = template_name or record.template_name
        if template_name:
            template = await self.resolver.resolve(template_name)
            data = self._template_data(record, user)
            rendered = self.resolver.render(template, data)
            email = EmailMessage(
                to=user.contact_email,
                subject=rendered.subject,
                html=rendered.html_body,
                text=rendered.text_body
            )
        else:
            email = self._compose(record, user)

        result = await self.transport.send(email)
        if not result:
            return DeliveryOutcome.failed(result.error or "email send failed")

        # 没有服务商回执，发送成功即视为已送达
        return DeliveryOutcome.delivered()

    async def _get_recipient(self, recipient_id: int) -> Optional[User]:
        async with self._db.get_async_session() as session:
            return await UserDirectoryRepository(session).get_by_id(recipient_id)

    @staticmethod
    def _template_data(record: Notification, user: User) -> Dict[str, Any]:
        data = {
            "userName": user.display_name,
            "title": record.title,
            "message": record.message,
        }
        data.update(record.payload or {})
        return data

    @staticmethod
    def _compose(record: Notification, user: User) -> EmailMessage:
        """没有模板时用标题和正文组装邮件"""
        details = ""
        if record.payload:
            payload_json = json.dumps(record.payload, indent=2, ensure_ascii=False, default=str)
            details = (
                "<p><strong>Detalles adicionales:</strong></p>"
                f"<pre>{escape(payload_json)}</pre>"
            )

        html = (
            f"<h2>{escape(record.title)}</h2>"
            f"<p>Hola {escape(user.display_name)},</p>"
            f"<p>{escape(record.message)}</p>"
            f"{details}"
            f"<p>Saludos,<br>{SIGNATURE}</p>"
        )
        text = (
            f"{record.title}\n\nHola {user.display_name},\n\n"
            f"{record.message}\n\nSaludos,\n{SIGNATURE}"
        )
        return EmailMessage(to=user.contact_email, subject=record.title, html=html, text=text)


class SimulatedDispatcher(ChannelDispatcher):
    """占位渠道：启用时直接视为已送达

    接入真实服务商时继承此类并覆盖 _send。
    """

    async def _deliver(self, record: Notification, template_name: Optional[str]) -> DeliveryOutcome:
        await self.require_enabled()
        await self._send(record)
        return DeliveryOutcome.delivered()

    async def _send(self, record: Notification) -> None:
        logger.info(f"{self.channel.value} 通知（模拟发送）: {record.id} -> 用户 {record.recipient_id}")


class SmsDispatcher(SimulatedDispatcher):
    """短信分发器"""

    channel = NotificationChannel.SMS


class PushDispatcher(SimulatedDispatcher):
    """推送分发器"""

    channel = NotificationChannel.PUSH


class InAppDispatcher(ChannelDispatcher):
    """站内通知分发器，只做持久化"""

    channel = NotificationChannel.IN_APP

    async def _deliver(self, record: Notification, template_name: Optional[str]) -> DeliveryOutcome:
        # 站内通知不检查 in_app_enabled，待产品确认是否应与其他渠道一致
        return DeliveryOutcome.delivered()


def build_dispatchers(gate: ConfigurationGate, transport: EmailTransport,
                      resolver: TemplateResolver, db: DatabaseManager) -> Dict[NotificationChannel, ChannelDispatcher]:
    """为每个渠道构建分发器"""
    dispatchers = [
        EmailDispatcher(gate, transport, resolver, db),
        SmsDispatcher(gate),
        PushDispatcher(gate),
        InAppDispatcher(gate),
    ]
    return {dispatcher.channel: dispatcher for dispatcher in dispatchers}
