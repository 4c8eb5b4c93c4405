"""ID模型基类

提供声明基类 Base 与自增主键。
一般情况下应使用 Model 或 CoreModel，而不是直接使用 IdModel。
"""
from __future__ import annotations

from typing import dataclass_transform

from sqlalchemy import Integer
from sqlalchemy.orm import declarative_base, declared_attr, Mapped, mapped_column

# 声明基类
Base = declarative_base()


@dataclass_transform(kw_only_default=True, field_specifiers=(mapped_column,))
class IdModel(Base):
    """ID模型基类

    所有模型共享自增整数主键 id，级联对账按 id 集合进行差集运算。
    """
    __abstract__ = True

    id: Mapped[int]

    @declared_attr
    def id(cls):
        return mapped_column(Integer, primary_key=True, autoincrement=True, comment='主键ID')
