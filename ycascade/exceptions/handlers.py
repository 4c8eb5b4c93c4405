"""FastAPI 异常处理器

将 ycascade 的异常转换为统一的 JSON 响应。
"""

import os

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .exceptions import BusinessException, ModelValidationError
from ..log import get_logger

logger = get_logger("ycascade.exceptions")


async def business_exception_handler(
    request: Request,
    exc: BusinessException
) -> JSONResponse:
    """业务异常处理器

    处理所有继承自 BusinessException 的异常。
    """
    request_id = getattr(request.state, "request_id", "unknown")

    log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log(
        f"Business exception occurred: {exc.code} - {exc.message}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error_code": exc.code,
            "status_code": exc.status_code,
        }
    )

    content = {
        "status": "error",
        "message": exc.message,
        "msg_details": exc.details,
        "data": {},
        "error_code": exc.code,
    }

    if isinstance(exc, ModelValidationError):
        content["data"] = {"errors": exc.errors.to_dict()}

    is_debug = os.getenv("DEBUG", "false").lower() == "true"
    if is_debug and exc.extra:
        content["debug_info"] = {k: str(v) for k, v in exc.extra.items()}

    return JSONResponse(status_code=exc.status_code, content=content)


def register_exception_handlers(app) -> None:
    """注册异常处理器到 FastAPI 应用

    使用示例:
        from fastapi import FastAPI
        from ycascade.exceptions import register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(BusinessException, business_exception_handler)
    logger.info("Exception handlers registered successfully")
