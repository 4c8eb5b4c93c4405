"""中间件模块

- CurrentUserMiddleware: 按请求记录当前用户，供操作人字段自动填充

使用示例:
    from ycascade.middleware import CurrentUserMiddleware

    app.add_middleware(CurrentUserMiddleware)
"""

from .current_user import (
    CurrentUserMiddleware,
    header_user_id_resolver,
    USER_ID_HEADER,
    set_current_user_id,
    get_current_user_id,
    clear_current_user_id,
)

__all__ = [
    "CurrentUserMiddleware",
    "header_user_id_resolver",
    "USER_ID_HEADER",
    "set_current_user_id",
    "get_current_user_id",
    "clear_current_user_id",
]
