"""当前用户追踪（Session 方式）

通过 session.info 记录操作者的 user_id，供 UserStampingMixin 填充
created_by_id / updated_by_id / deleted_by_id。

使用方式：
    方式1（推荐）：使用 CurrentUserMiddleware 中间件，按请求自动追踪

        from ycascade.middleware import CurrentUserMiddleware
        app.add_middleware(CurrentUserMiddleware, user_id_resolver=resolve_user_id)

    方式2：手动设置（适用于后台任务等场景）

        from ycascade.orm import set_user, clear_user

        set_user(session, user)  # 传入用户对象或用户ID
        # 执行操作...
        clear_user(session)

取值优先级：session.info 中的用户 > 中间件写入的 ContextVar。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Union

import sqlalchemy as sa

from ..middleware.current_user import get_current_user_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def set_user(session: "Session", user) -> None:
    """设置当前用户

    Args:
        session: SQLAlchemy session对象
        user: 用户对象或用户ID

    Example:
        set_user(session, user)  # 传入用户对象
        set_user(session, 123)   # 传入用户ID
    """
    if isinstance(user, (int, str)):
        session.info['user_id'] = user
        return

    mapper = sa.inspect(user.__class__, raiseerr=False)
    if mapper is not None and mapper.primary_key:
        pk_column = mapper.primary_key[0]
        session.info['user_id'] = getattr(user, mapper.get_property_by_column(pk_column).key)
        return

    if hasattr(user, 'id'):
        session.info['user_id'] = user.id
    else:
        raise ValueError(f"无法从对象中提取主键: {type(user)}")


def get_user_id(session: "Session") -> Optional[Union[int, str]]:
    """获取 session 上记录的用户ID"""
    return session.info.get('user_id')


def clear_user(session: "Session") -> None:
    """清除当前用户"""
    session.info.pop('user_id', None)


def resolve_current_user_id(session: Optional["Session"] = None) -> Optional[Union[int, str]]:
    """按优先级解析当前用户ID：session.info → ContextVar"""
    if session is not None:
        user_id = get_user_id(session)
        if user_id is not None:
            return user_id
    return get_current_user_id()


__all__ = [
    "set_user",
    "get_user_id",
    "clear_user",
    "resolve_current_user_id",
]
