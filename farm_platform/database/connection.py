"""数据库连接管理"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.config import DatabaseConfig, app_config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """数据库管理器"""

    def __init__(self, config: Optional[DatabaseConfig] = None, echo: bool = False):
        self._config = config or app_config.database
        self._echo = echo
        self._async_engine: Optional[AsyncEngine] = None
        self._async_session_factory = None
        self._test_mode = False

    def initialize(self, test_mode: bool = False) -> None:
        """初始化数据库连接"""
        self._test_mode = test_mode

        if test_mode:
            # 测试模式使用内存数据库，StaticPool 保证所有会话共享同一个连接
            self._async_engine = create_async_engine(
                "sqlite+aiosqlite:///:memory:",
                poolclass=StaticPool,
                connect_args={
                    "check_same_thread": False,
                },
                echo=self._echo
            )
        else:
            # 生产模式使用 PostgreSQL
            self._async_engine = create_async_engine(
                self._config.async_url,
                pool_size=20,
                max_overflow=30,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=30,
                connect_args={"server_settings": {"timezone": "UTC"}},
                echo=self._echo
            )

        self._async_session_factory = async_sessionmaker(
            bind=self._async_engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False
        )

        self._setup_event_listeners()

        logger.info(f"数据库连接已初始化 (测试模式: {test_mode})")

    def _setup_event_listeners(self) -> None:
        """设置数据库事件监听器"""
        sync_engine = self._async_engine.sync_engine

        @event.listens_for(sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """SQLite 特定配置"""
            if self._test_mode:
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        @event.listens_for(sync_engine, "invalidate")
        def receive_invalidate(dbapi_connection, connection_record, exception):
            """连接失效时的处理"""
            logger.warning(f"数据库连接失效: {exception}")

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """获取异步数据库会话，正常退出时提交，异常时回滚"""
        if not self._async_session_factory:
            raise RuntimeError("数据库未初始化，请先调用 initialize()")

        async with self._async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """创建数据库表"""
        if not self._async_engine:
            raise RuntimeError("数据库未初始化，请先调用 initialize()")

        # 导入所有模型以确保它们被注册
        from shared.models import Base  # noqa: F401

        async with self._async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("数据库表创建完成")

    async def drop_tables(self) -> None:
        """删除数据库表"""
        if not self._async_engine:
            raise RuntimeError("数据库未初始化，请先调用 initialize()")

        from shared.models import Base  # noqa: F401

        async with self._async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.info("数据库表删除完成")

    async def health_check(self) -> bool:
        """数据库健康检查"""
        try:
            async with self.get_async_session() as session:
                await session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(f"数据库健康检查失败: {e}")
            return False

    async def close(self) -> None:
        """关闭数据库连接"""
        if self._async_engine:
            await self._async_engine.dispose()

        logger.info("数据库连接已关闭")

    @property
    def async_engine(self) -> Optional[AsyncEngine]:
        """获取异步引擎"""
        return self._async_engine


# 全局数据库管理器实例
db_manager = DatabaseManager()
