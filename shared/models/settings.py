"""系统配置与邮件模板数据模型"""

from sqlalchemy import Column, String, Text, Boolean, UniqueConstraint

from .base import BaseModel as DBBaseModel


class SystemSetting(DBBaseModel):
    """按分类存储的键值配置"""

    __tablename__ = "system_settings"
    __table_args__ = (
        UniqueConstraint("category", "key", name="uq_system_settings_category_key"),
    )

    category = Column(String(50), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)
    description = Column(String(255), nullable=True)
    is_encrypted = Column(Boolean, nullable=False, default=False)


class EmailTemplate(DBBaseModel):
    """持久化的邮件模板"""

    __tablename__ = "email_templates"

    name = Column(String(100), unique=True, nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    html_content = Column(Text, nullable=False)
    text_content = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


# 默认配置，初始化数据库时写入（已有的行不会被覆盖）
DEFAULT_SETTINGS = {
    "email": [
        {"key": "smtp_host", "value": "", "description": "SMTP服务器"},
        {"key": "smtp_port", "value": "587", "description": "SMTP端口"},
        {"key": "smtp_secure", "value": "true", "description": "使用安全连接(TLS)"},
        {"key": "smtp_user", "value": "", "description": "SMTP用户名"},
        {"key": "smtp_password", "value": "", "description": "SMTP密码", "is_encrypted": True},
        {"key": "from_email", "value": "", "description": "默认发件人邮箱"},
        {"key": "from_name", "value": "Café Colombia", "description": "默认发件人名称"},
    ],
    "notifications": [
        {"key": "email_enabled", "value": "true", "description": "启用邮件通知"},
        {"key": "sms_enabled", "value": "false", "description": "启用短信通知"},
        {"key": "push_enabled", "value": "true", "description": "启用推送通知"},
        {"key": "payment_success_email", "value": "true", "description": "支付成功时发送邮件"},
        {"key": "payment_failed_email", "value": "true", "description": "支付失败时发送邮件"},
        {"key": "subscription_renewal_email", "value": "true", "description": "订阅续费时发送邮件"},
        {"key": "subscription_expiry_email", "value": "true", "description": "订阅即将到期时发送邮件"},
    ],
}
