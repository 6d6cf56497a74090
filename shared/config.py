"""配置管理模块"""

from pydantic import Field
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseSettings):
    """数据库配置"""

    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    name: str = Field(default="cafe_colombia")
    user: str = Field(default="postgres")
    password: str = Field(default="")

    model_config = {"env_prefix": "DB_", "env_file": ".env", "extra": "ignore"}

    @property
    def url(self) -> str:
        """获取数据库连接URL"""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"

    @property
    def async_url(self) -> str:
        """获取异步数据库连接URL"""
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class NotificationConfig(BaseSettings):
    """通知子系统配置

    SMTP凭据等运行时配置保存在 system_settings 表中，这里只包含进程级参数。
    """

    # 队列和工作协程
    worker_count: int = Field(default=2, ge=1)
    queue_max_size: int = Field(default=1000, ge=1)

    # 超时（秒）
    smtp_timeout: float = Field(default=30.0, gt=0)
    dispatch_timeout: float = Field(default=45.0, gt=0)

    # system_settings 中的分类名
    settings_category: str = Field(default="notifications")
    email_category: str = Field(default="email")

    model_config = {"env_prefix": "NOTIFY_", "env_file": ".env", "extra": "ignore"}


class AppConfig(BaseSettings):
    """应用配置"""

    name: str = Field(default="Café Colombia Platform", validation_alias="APP_NAME")
    version: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")

    # 数据库配置
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # 通知配置
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    model_config = {"env_file": ".env", "extra": "ignore"}


# 全局配置实例
app_config = AppConfig()
