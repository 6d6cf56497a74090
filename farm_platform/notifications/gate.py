"""
通知配置读取

所有配置直接读取 system_settings 表，不做缓存，管理员修改后立即生效。
读取失败或配置缺失时一律按"关闭"处理，不向调用方抛出异常。
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from shared.config import NotificationConfig
from shared.models.notification import NotificationChannel
from ..database.connection import DatabaseManager
from ..database.repositories import SystemSettingRepository


logger = logging.getLogger(__name__)

DEFAULT_SMTP_PORT = 587
DEFAULT_FROM_NAME = "Café Colombia"


def parse_bool(value: Optional[str]) -> bool:
    """解析配置中的布尔值，只有 "true" 视为真"""
    if value is None:
        return False
    return str(value).strip().lower() == "true"


@dataclass(frozen=True)
class EmailCredentials:
    """SMTP凭据"""
    smtp_host: str
    smtp_user: str
    smtp_password: str = field(default="", repr=False)
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_secure: bool = True
    from_email: str = ""
    from_name: str = DEFAULT_FROM_NAME

    @property
    def sender_address(self) -> str:
        """发件人地址，未配置时使用SMTP用户名"""
        return self.from_email or self.smtp_user

    def describe(self) -> Dict[str, Any]:
        """
        获取配置信息（隐藏敏感信息）

        Returns:
            Dict[str, Any]: 配置信息
        """
        return {
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_secure": self.smtp_secure,
            "smtp_user": self.smtp_user,
            "from_email": self.sender_address,
            "from_name": self.from_name,
            "password_set": bool(self.smtp_password),
        }

    @classmethod
    def from_settings(cls, settings: Dict[str, str]) -> Optional["EmailCredentials"]:
        """从 email 分类的配置构建凭据，主机或用户名为空时返回None"""
        host = (settings.get("smtp_host") or "").strip()
        user = (settings.get("smtp_user") or "").strip()
        if not host or not user:
            return None

        try:
            port = int(settings.get("smtp_port") or DEFAULT_SMTP_PORT)
        except ValueError:
            logger.warning(f"无效的SMTP端口配置: {settings.get('smtp_port')!r}，使用默认端口")
            port = DEFAULT_SMTP_PORT

        return cls(
            smtp_host=host,
            smtp_user=user,
            smtp_password=settings.get("smtp_password") or "",
            smtp_port=port,
            smtp_secure=parse_bool(settings.get("smtp_secure")),
            from_email=(settings.get("from_email") or "").strip(),
            from_name=settings.get("from_name") or DEFAULT_FROM_NAME,
        )


class ConfigurationGate:
    """分类配置的只读访问器"""

    def __init__(self, db: DatabaseManager, config: Optional[NotificationConfig] = None):
        self._db = db
        self._config = config or NotificationConfig()

    async def get_category(self, category: str) -> Dict[str, str]:
        """读取整个分类，失败时返回空字典"""
        try:
            async with self._db.get_async_session() as session:
                return await SystemSettingRepository(session).get_category(category)
        except Exception as e:
            logger.warning(f"读取配置分类失败: {category}, 错误: {e}")
            return {}

    async def _get_flag(self, key: str) -> bool:
        try:
            async with self._db.get_async_session() as session:
                value = await SystemSettingRepository(session).get_value(
                    self._config.settings_category, key
                )
        except Exception as e:
            logger.warning(f"读取配置失败: {self._config.settings_category}/{key}, 错误: {e}")
            return False

        if value is None:
            logger.debug(f"配置不存在，按关闭处理: {self._config.settings_category}/{key}")
        return parse_bool(value)

    async def get_channel_enabled(self, channel: NotificationChannel) -> bool:
        """渠道是否启用（{channel}_enabled）"""
        try:
            channel = NotificationChannel(channel)
        except ValueError:
            logger.warning(f"未知的通知渠道: {channel!r}")
            return False
        return await self._get_flag(f"{channel.value}_enabled")

    async def get_event_toggle(self, event_key: str) -> bool:
        """业务事件开关，例如 payment_success_email"""
        return await self._get_flag(event_key)

    async def get_email_credentials(self) -> Optional[EmailCredentials]:
        """读取SMTP凭据，未配置时返回None"""
        settings = await self.get_category(self._config.email_category)
        credentials = EmailCredentials.from_settings(settings)
        if credentials is None:
            logger.info("SMTP未配置（smtp_host 或 smtp_user 为空）")
        return credentials
