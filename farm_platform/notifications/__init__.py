"""
通知系统模块

将支付、订阅等业务事件转换为邮件、短信、推送和站内通知，并持久化投递状态。
"""

from .types import (
    NotificationChannel, NotificationStatus, NotificationEvent,
    NotificationEventType, DeliveryOutcome, EmailMessage, SendResult
)
from .exceptions import (
    NotificationError, ValidationError, ConfigurationError,
    TemplateNotFoundError, TransportError, InvalidStatusTransition
)
from .gate import ConfigurationGate, EmailCredentials
from .templates import Template, TemplateResolver, render_placeholders, DEFAULT_TEMPLATES
from .email import EmailTransport
from .channels import (
    ChannelDispatcher, EmailDispatcher, SmsDispatcher, PushDispatcher,
    InAppDispatcher, build_dispatchers
)
from .store import NotificationStore
from .orchestrator import NotificationOrchestrator
from .queue import NotificationDispatchQueue

__all__ = [
    'NotificationChannel',
    'NotificationStatus',
    'NotificationEvent',
    'NotificationEventType',
    'DeliveryOutcome',
    'EmailMessage',
    'SendResult',
    'NotificationError',
    'ValidationError',
    'ConfigurationError',
    'TemplateNotFoundError',
    'TransportError',
    'InvalidStatusTransition',
    'ConfigurationGate',
    'EmailCredentials',
    'Template',
    'TemplateResolver',
    'render_placeholders',
    'DEFAULT_TEMPLATES',
    'EmailTransport',
    'ChannelDispatcher',
    'EmailDispatcher',
    'SmsDispatcher',
    'PushDispatcher',
    'InAppDispatcher',
    'build_dispatchers',
    'NotificationStore',
    'NotificationOrchestrator',
    'NotificationDispatchQueue',
]
