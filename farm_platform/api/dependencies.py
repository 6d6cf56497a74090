"""API依赖注入"""

from fastapi import HTTPException, Request, status

from shared.models.user import User
from ..notifications.orchestrator import NotificationOrchestrator
from ..notifications.store import NotificationStore


def get_current_user(request: Request) -> User:
    """获取当前用户（由认证中间件写入请求状态）"""
    if hasattr(request.state, "current_user"):
        return request.state.current_user
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User not authenticated"
    )


def get_notification_orchestrator(request: Request) -> NotificationOrchestrator:
    """获取应用级的通知编排器"""
    orchestrator = getattr(request.app.state, "notification_orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification service not available"
        )
    return orchestrator


def get_notification_store(request: Request) -> NotificationStore:
    """获取通知存储"""
    return get_notification_orchestrator(request).store
