"""
通知系统异常定义

除 ValidationError 外，这些异常都不会穿过 NotificationOrchestrator 的公共接口，
而是被转换为 failed 状态的通知记录。
"""


class NotificationError(Exception):
    """通知系统异常基类"""


class ValidationError(NotificationError):
    """调用方提供的事件不完整（缺少收件人或渠道），不会创建记录"""


class ConfigurationError(NotificationError):
    """渠道被禁用或缺少传输凭据"""


class TemplateNotFoundError(NotificationError):
    """模板在数据库和内置模板中都不存在"""

    def __init__(self, name: str):
        super().__init__(f"template not found: {name}")
        self.name = name


class TransportError(NotificationError):
    """SMTP连接或发送失败"""


class InvalidStatusTransition(NotificationError):
    """非法的通知状态流转"""

    def __init__(self, notification_id, current, target):
        super().__init__(
            f"notification {notification_id}: cannot move from "
            f"{getattr(current, 'value', current)} to {getattr(target, 'value', target)}"
        )
        self.notification_id = notification_id
        self.current = current
        self.target = target
