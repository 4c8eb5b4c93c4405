"""异常类定义

定义级联持久化使用的异常类体系。
"""

import copy
from enum import Enum
from typing import Optional, List, Any, Dict, Union

from fastapi import status


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用。

    使用示例:
        from ycascade.exceptions import ErrorCode

        if exc.code == ErrorCode.CASCADE_FAILED:
            ...
    """

    # ==================== 通用错误 ====================
    BUSINESS_ERROR = "BUSINESS_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    # ==================== 关系配置 ====================
    UNKNOWN_RELATION = "UNKNOWN_RELATION"
    INVALID_RELATION_CONFIG = "INVALID_RELATION_CONFIG"

    # ==================== 级联执行 ====================
    CASCADE_FAILED = "CASCADE_FAILED"

    # ==================== 验证相关 (422) ====================
    VALIDATION_ERROR = "VALIDATION_ERROR"


ErrorCodeType = Union[str, ErrorCode]


class BusinessException(Exception):
    """异常基类

    属性:
        message: 错误消息
        code: 错误代码（ErrorCode 枚举或字符串）
        status_code: HTTP 状态码
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.BUSINESS_ERROR,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


class ORMException(BusinessException):
    """ORM 层异常基类

    默认视为服务端错误（500），子类按需覆盖。
    """

    def __init__(
        self,
        message: str = "数据持久化失败",
        code: ErrorCodeType = ErrorCode.DATABASE_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(message, code, status_code, details, **extra)


class UnknownRelationError(ORMException, KeyError):
    """访问未声明的关系名时抛出

    使用示例:
        registry.options("unknown")
        # UnknownRelationError: 模型 Order 未声明关系 'unknown'
    """

    def __init__(self, model_name: str, relation_name: str):
        self.model_name = model_name
        self.relation_name = relation_name
        super().__init__(
            f"模型 {model_name} 未声明关系 '{relation_name}'",
            code=ErrorCode.UNKNOWN_RELATION,
            model=model_name,
            relation=relation_name,
        )

    def __str__(self) -> str:
        # KeyError 默认会给消息加引号
        return self.message


class InvalidRelationConfigurationError(ORMException):
    """关系配置非法（目标缺失、选项取值错误、缺少显式解除关联策略等）

    在模型类创建阶段抛出。
    """

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        relation_name: Optional[str] = None,
    ):
        self.model_name = model_name
        self.relation_name = relation_name
        prefix = ""
        if model_name and relation_name:
            prefix = f"{model_name}.{relation_name}: "
        elif model_name:
            prefix = f"{model_name}: "
        super().__init__(
            prefix + message,
            code=ErrorCode.INVALID_RELATION_CONFIG,
            model=model_name,
            relation=relation_name,
        )


class CascadeFailureError(ORMException):
    """级联保存/删除某个关系时失败

    事务已回滚，实体上暂存的关系 ID 保持不变，可检查后重试。

    属性:
        relation_name: 失败的关系名
        cause: 原始异常
    """

    def __init__(self, relation_name: str, cause: BaseException):
        self.relation_name = relation_name
        self.cause = cause
        super().__init__(
            f"关系 '{relation_name}' 级联处理失败: {cause}",
            code=ErrorCode.CASCADE_FAILED,
            relation=relation_name,
            cause_type=type(cause).__name__,
        )


class ModelValidationError(BusinessException):
    """模型保存前验证失败

    属性:
        errors: ValidationErrors 错误集合
    """

    def __init__(self, errors, message: str = "数据验证失败"):
        self.errors = errors
        super().__init__(
            message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=errors.all(),
            fields=errors.to_dict(),
        )
