"""API异常处理"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import structlog

from ..notifications.exceptions import NotificationError, InvalidStatusTransition

logger = structlog.get_logger()


def setup_exception_handlers(app: FastAPI):
    """设置异常处理器"""

    @app.exception_handler(InvalidStatusTransition)
    async def status_transition_handler(request: Request, exc: InvalidStatusTransition):
        """非法状态流转"""
        logger.warning(
            "invalid_status_transition",
            notification_id=exc.notification_id,
            error=str(exc),
            path=request.url.path
        )

        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": "Conflict",
                "message": str(exc)
            }
        )

    @app.exception_handler(NotificationError)
    async def notification_exception_handler(request: Request, exc: NotificationError):
        """通知系统异常处理器"""
        logger.warning(
            "notification_error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Notification Error",
                "message": str(exc)
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """数据库异常处理器"""
        logger.error(
            "database_error",
            error=str(exc),
            path=request.url.path
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Database Error",
                "message": "A database error occurred"
            }
        )
