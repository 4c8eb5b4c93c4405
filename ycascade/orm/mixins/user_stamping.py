"""操作人记录 Mixin

在 flush 前自动填充操作人字段（只处理表上实际存在的列）：
- 新增: created_by_id, updated_by_id
- 更新: updated_by_id
- 软删除（deleted_at 由空变为非空）: deleted_by_id
- 恢复（deleted_at 由非空变为空）: 清空 deleted_by_id

列名由 UserStampSettings 配置，操作人来自 get_user_stamp_value()。
新增与更新时总是写入当前操作人（没有操作人时写入 None），调用方赋的值会被覆盖。

使用示例:
    from ycascade.orm import Model, UserStampColumnsMixin, set_user

    class Article(UserStampColumnsMixin, Model):
        title: Mapped[str] = mapped_column(String(100))

    set_user(session, 7)
    Article(title="hello").save(commit=True)   # created_by_id == 7
"""

from __future__ import annotations

from typing import Optional, Union

from sqlalchemy import Integer, event, inspect as sa_inspect
from sqlalchemy.orm import Mapped, mapped_column, object_session

from ...config import get_user_stamp_settings
from ..current_user import resolve_current_user_id

# 软删除时间字段
DELETED_AT_COLUMN = "deleted_at"


class UserStampingMixin:
    """填充操作人字段（需与 CoreModel 一起使用）"""

    def get_user_stamp_value(self) -> Optional[Union[int, str]]:
        """当前操作人，子类可覆盖

        默认顺序：session.info 中的用户 → 请求 ContextVar
        """
        return resolve_current_user_id(object_session(self))


class UserStampColumnsMixin:
    """声明默认名称的操作人列"""

    created_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="创建人ID")
    updated_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="更新人ID")
    deleted_by_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="删除人ID")


def _has_column(mapper, name: str) -> bool:
    return bool(name) and name in mapper.column_attrs.keys()


def _stamp(mapper, target, column: str, value):
    if _has_column(mapper, column):
        setattr(target, column, value)


@event.listens_for(UserStampingMixin, "before_insert", propagate=True)
def stamp_before_insert(mapper, connection, target):
    settings = get_user_stamp_settings()
    if not settings.enabled:
        return
    user_id = target.get_user_stamp_value()
    _stamp(mapper, target, settings.created_by_column, user_id)
    _stamp(mapper, target, settings.updated_by_column, user_id)


@event.listens_for(UserStampingMixin, "before_update", propagate=True)
def stamp_before_update(mapper, connection, target):
    settings = get_user_stamp_settings()
    if not settings.enabled:
        return
    user_id = target.get_user_stamp_value()

    if _has_column(mapper, DELETED_AT_COLUMN):
        history = sa_inspect(target).attrs[DELETED_AT_COLUMN].history
        if history.has_changes():
            if getattr(target, DELETED_AT_COLUMN) is None:
                _stamp(mapper, target, settings.deleted_by_column, None)
            elif user_id is not None:
                _stamp(mapper, target, settings.deleted_by_column, user_id)

    _stamp(mapper, target, settings.updated_by_column, user_id)


__all__ = [
    "UserStampingMixin",
    "UserStampColumnsMixin",
    "stamp_before_insert",
    "stamp_before_update",
]
