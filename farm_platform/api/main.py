"""FastAPI主应用程序"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from shared.config import app_config
from shared.logger import setup_logging
from ..database.connection import db_manager
from ..notifications.orchestrator import NotificationOrchestrator
from ..notifications.queue import NotificationDispatchQueue
from .exceptions import setup_exception_handlers
from .routes import notifications_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    setup_logging(app_config.log_level)
    logger.info("app_starting", name=app_config.name, version=app_config.version)

    db_manager.initialize()
    if not await db_manager.health_check():
        raise RuntimeError("数据库健康检查失败")

    config = app_config.notifications
    orchestrator = NotificationOrchestrator.from_database(db_manager, config)
    dispatch_queue = NotificationDispatchQueue(
        orchestrator,
        max_size=config.queue_max_size,
        worker_count=config.worker_count
    )
    await dispatch_queue.start()

    app.state.notification_orchestrator = orchestrator
    app.state.notification_queue = dispatch_queue

    yield

    # 等待队列中的通知发送完毕再关闭数据库
    await dispatch_queue.stop(drain=True)
    await db_manager.close()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """创建FastAPI应用"""

    app = FastAPI(
        title=app_config.name,
        version=app_config.version,
        docs_url="/docs" if app_config.debug else None,
        redoc_url="/redoc" if app_config.debug else None,
        openapi_url="/openapi.json" if app_config.debug else None,
        lifespan=lifespan
    )

    setup_exception_handlers(app)
    register_routes(app)

    return app


def register_routes(app: FastAPI):
    """注册路由"""

    @app.get("/health", tags=["系统"])
    async def health_check():
        """健康检查端点"""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": app_config.version
        }

    app.include_router(notifications_router)


app = create_app()
