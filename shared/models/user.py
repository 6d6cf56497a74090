"""用户数据模型

users 表由用户管理模块维护，通知子系统只读取收件人的联系方式。
"""

from typing import Optional
from sqlalchemy import Column, String

from .base import BaseModel as DBBaseModel


class User(DBBaseModel):
    """用户模型（只读视图）"""

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    @property
    def display_name(self) -> str:
        """邮件中使用的称呼"""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Usuario"

    @property
    def contact_email(self) -> Optional[str]:
        """收件邮箱"""
        return self.email or None
