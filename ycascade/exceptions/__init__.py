"""异常模块

使用示例:
    from ycascade.exceptions import CascadeFailureError

    try:
        order.save(commit=True)
    except CascadeFailureError as e:
        print(e.relation_name, e.cause)
"""

from .exceptions import (
    ErrorCode,
    ErrorCodeType,
    BusinessException,
    ORMException,
    UnknownRelationError,
    InvalidRelationConfigurationError,
    CascadeFailureError,
    ModelValidationError,
)
from .handlers import (
    business_exception_handler,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "ErrorCodeType",
    "BusinessException",
    "ORMException",
    "UnknownRelationError",
    "InvalidRelationConfigurationError",
    "CascadeFailureError",
    "ModelValidationError",
    "business_exception_handler",
    "register_exception_handlers",
]
