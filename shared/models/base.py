"""基础数据模型"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import DeclarativeBase
from pydantic import BaseModel as PydanticBaseModel, ConfigDict


def utcnow() -> datetime:
    """当前UTC时间"""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy基础模型"""
    pass


class BaseModel(Base):
    """基础数据模型，包含通用字段"""

    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        index=True
    )
    # 时间戳在应用侧生成，保证同一秒内的记录也能按创建顺序排序
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


class BaseSchema(PydanticBaseModel):
    """基础Pydantic模型"""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
