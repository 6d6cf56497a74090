#!/usr/bin/env python3
"""数据库初始化脚本：创建表并写入默认的通知和邮件配置"""

import asyncio
import logging
import sys

from farm_platform.database import db_manager
from farm_platform.database.repositories import SystemSettingRepository
from shared.models.settings import DEFAULT_SETTINGS

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_default_settings() -> int:
    """写入缺失的默认配置，已有配置保持不变"""
    created = 0
    async with db_manager.get_async_session() as session:
        repo = SystemSettingRepository(session)
        for category, defaults in DEFAULT_SETTINGS.items():
            count = await repo.ensure_defaults(category, defaults)
            logger.info(f"配置分类 {category}: 新增 {count} 项")
            created += count
    return created


async def main():
    """主函数"""
    try:
        logger.info("开始初始化数据库...")

        db_manager.initialize()

        if not await db_manager.health_check():
            logger.error("数据库连接失败")
            return 1

        logger.info("数据库连接正常")

        await db_manager.create_tables()
        await seed_default_settings()

        logger.info("数据库初始化完成")
        return 0

    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        return 1
    finally:
        await db_manager.close()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
