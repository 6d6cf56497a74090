"""测试配置"""

import pytest
import pytest_asyncio

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from farm_platform.database.connection import DatabaseManager
from farm_platform.database.repositories import SystemSettingRepository
from farm_platform.notifications.orchestrator import NotificationOrchestrator
from shared.config import NotificationConfig
from shared.models.settings import EmailTemplate
from shared.models.user import User


SMTP_SETTINGS = {
    "smtp_host": "smtp.example.com",
    "smtp_port": "587",
    "smtp_secure": "false",
    "smtp_user": "mailer@example.com",
    "smtp_password": "secret",
    "from_email": "no-reply@cafecolombia.co",
    "from_name": "Café Colombia",
}

ALL_CHANNELS_ENABLED = {
    "email_enabled": "true",
    "sms_enabled": "true",
    "push_enabled": "true",
}


@pytest_asyncio.fixture
async def db_manager():
    """每个测试使用独立的内存数据库"""
    manager = DatabaseManager()
    manager.initialize(test_mode=True)

    await manager.create_tables()

    yield manager

    await manager.drop_tables()
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager):
    """创建测试数据库会话"""
    async with db_manager.get_async_session() as session:
        yield session


@pytest.fixture
def apply_settings(db_manager):
    """写入一组配置"""
    async def _apply(category, values):
        async with db_manager.get_async_session() as session:
            repo = SystemSettingRepository(session)
            for key, value in values.items():
                await repo.set_value(category, key, value)
    return _apply


@pytest.fixture
def add_user(db_manager):
    """写入一个收件人"""
    async def _add(user_id, email, first_name=None, last_name=None):
        async with db_manager.get_async_session() as session:
            session.add(User(id=user_id, email=email, first_name=first_name, last_name=last_name))
    return _add


@pytest.fixture
def add_template(db_manager):
    """写入一个持久化模板"""
    async def _add(name, subject, html_content, text_content=None, is_active=True):
        async with db_manager.get_async_session() as session:
            session.add(EmailTemplate(
                name=name,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                is_active=is_active
            ))
    return _add


@pytest.fixture
def notification_config():
    """测试用的通知配置"""
    return NotificationConfig(smtp_timeout=5.0, dispatch_timeout=10.0)


@pytest_asyncio.fixture
async def configured_db(db_manager, apply_settings, add_user):
    """已配置SMTP、开启全部渠道并包含收件人 1 的数据库"""
    await apply_settings("email", SMTP_SETTINGS)
    await apply_settings("notifications", ALL_CHANNELS_ENABLED)
    await add_user(1, "ana@finca.co", "Ana", "Gómez")
    return db_manager


@pytest_asyncio.fixture
async def orchestrator(configured_db, notification_config):
    """基于测试数据库组装的通知编排器"""
    return NotificationOrchestrator.from_database(configured_db, notification_config)
