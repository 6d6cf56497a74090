"""
通知编排器 - 统一的通知发送入口

notify() 的每次调用都会同步等待 创建记录 → 渠道投递 → 写回状态 全部完成，
除调用方输入不合法外，任何失败都只体现为 failed 记录和返回值 False。
"""

import asyncio
import logging
from typing import Dict, Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from shared.config import NotificationConfig
from shared.models.notification import NotificationChannel, NotificationEvent, NotificationStatus
from ..database.connection import DatabaseManager
from .channels import ChannelDispatcher, build_dispatchers
from .email import EmailTransport
from .exceptions import ValidationError
from .gate import ConfigurationGate
from .store import NotificationStore
from .templates import TemplateResolver
from .types import DeliveryOutcome, NotificationEventType


logger = logging.getLogger(__name__)

EventInput = Union[NotificationEvent, Mapping[str, Any]]


class NotificationOrchestrator:
    """通知编排器"""

    def __init__(
        self,
        gate: ConfigurationGate,
        store: NotificationStore,
        dispatchers: Dict[NotificationChannel, ChannelDispatcher],
        transport: EmailTransport,
        config: Optional[NotificationConfig] = None
    ):
        missing = set(NotificationChannel) - set(dispatchers)
        if missing:
            raise ValueError(f"缺少渠道分发器: {sorted(c.value for c in missing)}")

        self.gate = gate
        self.store = store
        self.dispatchers = dict(dispatchers)
        self.transport = transport
        self.config = config or NotificationConfig()

    @classmethod
    def from_database(cls, db: DatabaseManager,
                      config: Optional[NotificationConfig] = None) -> "NotificationOrchestrator":
        """用同一个数据库管理器组装全部组件"""
        config = config or NotificationConfig()
        gate = ConfigurationGate(db, config)
        transport = EmailTransport(gate, timeout=config.smtp_timeout)
        resolver = TemplateResolver(db)
        dispatchers = build_dispatchers(gate, transport, resolver, db)
        return cls(gate, NotificationStore(db), dispatchers, transport, config)

    @staticmethod
    def _validate(event: EventInput) -> NotificationEvent:
        """校验事件，缺少收件人或渠道时抛出 ValidationError"""
        try:
            if not isinstance(event, NotificationEvent):
                event = NotificationEvent.model_validate(dict(event))
        except (PydanticValidationError, TypeError, ValueError) as e:
            raise ValidationError(f"invalid notification event: {e}") from e

        if event.recipient_id is None:
            raise ValidationError("recipient_id is required")
        if event.channel is None:
            raise ValidationError("channel is required")
        return event

    async def notify(self, event: EventInput) -> bool:
        """
        发送通知

        Args:
            event: 通知事件，包含 recipient_id, channel, title, message, payload, template_name

        Returns:
            bool: 最终状态为 sent 或 delivered 时返回True
        """
        try:
            event = self._validate(event)
        except ValidationError as e:
            logger.warning(f"通知事件无效，未创建记录: {e}")
            return False

        try:
            notification_id = await self.store.create(event.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"创建通知记录失败: 用户 {event.recipient_id}, 错误: {e}")
            return False

        outcome = await self._dispatch(notification_id, event)

        try:
            await self.store.update_status(notification_id, outcome.status, outcome.error)
        except Exception as e:
            logger.error(f"更新通知状态失败: {notification_id}, 错误: {e}")
            await self._mark_failed(notification_id, str(e) or e.__class__.__name__)
            return False

        if outcome.succeeded:
            logger.info(f"通知发送成功: {notification_id}, 渠道: {event.channel.value}")
        else:
            logger.warning(
                f"通知发送失败: {notification_id}, 渠道: {event.channel.value}, 错误: {outcome.error}"
            )
        return outcome.succeeded

    async def _mark_failed(self, notification_id: int, error: str) -> None:
        """状态写回失败后再尝试一次标记为 failed"""
        try:
            await self.store.update_status(notification_id, NotificationStatus.FAILED, error)
        except Exception as e:
            logger.error(f"标记通知失败状态失败: {notification_id}, 错误: {e}")

    async def _dispatch(self, notification_id: int, event: NotificationEvent) -> DeliveryOutcome:
        """调用渠道分发器，超时和意外异常都转换为 failed"""
        dispatcher = self.dispatchers[event.channel]
        timeout = self.config.dispatch_timeout

        try:
            record = await self.store.get(notification_id)
            return await asyncio.wait_for(
                dispatcher.deliver(record, event.template_name),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            return DeliveryOutcome.failed(f"delivery timed out after {timeout:g}s")
        except Exception as e:
            logger.exception(f"通知投递时发生错误: {notification_id}")
            return DeliveryOutcome.failed(str(e) or e.__class__.__name__)

    async def _notify_event(self, event_type: NotificationEventType, recipient_id: int,
                            data: Optional[Mapping[str, Any]], email_title: str, email_message: str,
                            in_app_title: str, in_app_message: str) -> None:
        """业务事件：按开关发送邮件，并始终发送一条站内通知"""
        payload = dict(data or {})

        try:
            email_enabled = await self.gate.get_event_toggle(event_type.toggle_key)
        except Exception as e:
            logger.warning(f"读取事件开关失败: {event_type.toggle_key}, 错误: {e}")
            email_enabled = False

        if email_enabled:
            await self.notify(NotificationEvent(
                recipient_id=recipient_id,
                channel=NotificationChannel.EMAIL,
                title=email_title,
                message=email_message,
                payload=payload,
                template_name=event_type.template
            ))
        else:
            logger.info(f"事件邮件已关闭，跳过邮件通知: {event_type.toggle_key}, 用户 {recipient_id}")

        await self.notify(NotificationEvent(
            recipient_id=recipient_id,
            channel=NotificationChannel.IN_APP,
            title=in_app_title,
            message=in_app_message,
            payload=payload
        ))

    async def notify_payment_success(self, recipient_id: int, payment_data: Mapping[str, Any]) -> None:
        """支付成功通知"""
        plan = (payment_data or {}).get("planName", "")
        message = f"Tu pago por {plan} ha sido procesado exitosamente."
        await self._notify_event(
            NotificationEventType.PAYMENT_SUCCESS, recipient_id, payment_data,
            "Pago Procesado Exitosamente", message,
            "Pago Exitoso", message
        )

    async def notify_payment_failed(self, recipient_id: int, payment_data: Mapping[str, Any]) -> None:
        """支付失败通知"""
        plan = (payment_data or {}).get("planName", "")
        await self._notify_event(
            NotificationEventType.PAYMENT_FAILED, recipient_id, payment_data,
            "Error en el Pago",
            f"Hemos tenido un problema procesando tu pago para {plan}.",
            "Error en el Pago",
            f"Error procesando tu pago para {plan}. Por favor intenta nuevamente."
        )

    async def notify_subscription_renewal(self, recipient_id: int,
                                          subscription_data: Mapping[str, Any]) -> None:
        """订阅续费通知"""
        plan = (subscription_data or {}).get("planName", "")
        await self._notify_event(
            NotificationEventType.SUBSCRIPTION_RENEWAL, recipient_id, subscription_data,
            "Suscripción Renovada",
            f"Tu suscripción a {plan} ha sido renovada exitosamente.",
            "Suscripción Renovada",
            f"Tu suscripción a {plan} ha sido renovada."
        )

    async def notify_subscription_expiry(self, recipient_id: int,
                                         subscription_data: Mapping[str, Any]) -> None:
        """订阅即将到期通知"""
        data = subscription_data or {}
        plan = data.get("planName", "")
        await self._notify_event(
            NotificationEventType.SUBSCRIPTION_EXPIRY, recipient_id, subscription_data,
            "Tu Suscripción Expira Pronto",
            f"Tu suscripción a {plan} expirará el {data.get('expiryDate', '')}.",
            "Suscripción por Expirar",
            f"Tu suscripción a {plan} expirará pronto."
        )

    async def notify_welcome(self, recipient_id: int, data: Optional[Mapping[str, Any]] = None) -> None:
        """欢迎通知，没有单独的事件开关，只受邮件渠道开关控制"""
        payload = dict(data or {})
        await self.notify(NotificationEvent(
            recipient_id=recipient_id,
            channel=NotificationChannel.EMAIL,
            title="Bienvenido a Café Colombia",
            message="¡Gracias por unirte a nuestra comunidad!",
            payload=payload,
            template_name="welcome"
        ))
        await self.notify(NotificationEvent(
            recipient_id=recipient_id,
            channel=NotificationChannel.IN_APP,
            title="Bienvenido a Café Colombia",
            message="¡Gracias por unirte a nuestra comunidad!",
            payload=payload
        ))

    async def test_email_configuration(self) -> Dict[str, str]:
        """
        按当前配置重新初始化邮件传输并测试连接

        Returns:
            Dict[str, str]: {"status": "success" | "error", "message": ...}
        """
        try:
            await self.transport.initialize()
            if await self.transport.verify():
                return {"status": "success", "message": "SMTP connection successful"}
            if not self.transport.configured:
                return {"status": "error", "message": "SMTP is not configured"}
            return {"status": "error", "message": "SMTP connection failed"}
        except Exception as e:
            logger.error(f"测试邮件配置失败: {e}")
            return {"status": "error", "message": f"Error testing email configuration: {e}"}
