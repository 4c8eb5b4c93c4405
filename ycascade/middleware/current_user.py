"""当前用户追踪中间件

按请求解析 user_id 并存入 ContextVar，配合 UserStampingMixin
自动填充操作人字段。

使用示例:
    from fastapi import FastAPI, Request
    from ycascade.middleware import CurrentUserMiddleware

    app = FastAPI()

    def resolve_user_id(request: Request):
        return request.headers.get("X-User-ID")

    app.add_middleware(
        CurrentUserMiddleware,
        user_id_resolver=resolve_user_id,
        skip_paths=["/login", "/docs"]
    )

    # API 代码无需任何改动
    @app.post("/orders")
    def create_order(code: str):
        order = Order(code=code)
        order.save(commit=True)  # created_by_id 自动填充
        return {"id": order.id}
"""

from contextvars import ContextVar
from typing import Callable, List, Optional, Union

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..log import get_logger

logger = get_logger("ycascade.middleware.current_user")

# ContextVar 用于在中间件层存储 user_id（无需 session）
_current_user_id_var: ContextVar[Optional[Union[int, str]]] = ContextVar(
    'current_user_id', default=None
)

# 默认从该请求头读取 user_id
USER_ID_HEADER = "X-User-ID"


def set_current_user_id(user_id: Optional[Union[int, str]]) -> None:
    """设置当前用户 ID（ContextVar 方式，用于中间件）"""
    _current_user_id_var.set(user_id)


def get_current_user_id() -> Optional[Union[int, str]]:
    """获取当前用户 ID（ContextVar 方式）"""
    return _current_user_id_var.get()


def clear_current_user_id() -> None:
    """清除当前用户 ID（ContextVar 方式）"""
    _current_user_id_var.set(None)


def header_user_id_resolver(request: Request) -> Optional[Union[int, str]]:
    """从 X-User-ID 请求头读取 user_id，纯数字时转为 int"""
    value = request.headers.get(USER_ID_HEADER)
    if not value:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else value


class CurrentUserMiddleware(BaseHTTPMiddleware):
    """当前用户追踪中间件

    Args:
        app: FastAPI/Starlette 应用实例
        user_id_resolver: 从 Request 解析 user_id 的函数，默认读取 X-User-ID 请求头
        skip_paths: 跳过追踪的路径列表，会与默认列表合并
    """

    # 默认跳过的路径
    DEFAULT_SKIP_PATHS = [
        "/docs",
        "/redoc",
        "/openapi.json",
        "/health",
        "/ping",
    ]

    def __init__(
        self,
        app,
        user_id_resolver: Optional[Callable[[Request], Optional[Union[int, str]]]] = None,
        skip_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.user_id_resolver = user_id_resolver or header_user_id_resolver

        self.skip_paths = set(self.DEFAULT_SKIP_PATHS)
        if skip_paths:
            self.skip_paths.update(skip_paths)

    def _should_skip(self, path: str) -> bool:
        """判断是否应该跳过该路径（精确匹配或前缀匹配）"""
        if path in self.skip_paths:
            return True
        for skip_path in self.skip_paths:
            if path.startswith(skip_path + "/"):
                return True
        return False

    async def dispatch(self, request: Request, call_next) -> Response:
        """处理请求"""
        if self._should_skip(request.url.path):
            return await call_next(request)

        try:
            user_id = self.user_id_resolver(request)
        except (ValueError, KeyError, AttributeError) as e:
            logger.warning(f"解析当前用户失败，按匿名请求处理: {e}")
            user_id = None

        token = _current_user_id_var.set(user_id)
        try:
            return await call_next(request)
        finally:
            # 请求结束，恢复 ContextVar
            _current_user_id_var.reset(token)


__all__ = [
    "CurrentUserMiddleware",
    "header_user_id_resolver",
    "USER_ID_HEADER",
    "set_current_user_id",
    "get_current_user_id",
    "clear_current_user_id",
]
