"""验证约束

在 __rules__ 中与 Annotated 组合使用的约束：
- StringLength: 字符串长度
- RegularExpression: 正则表达式
- Range: 数值范围
- Phone / Email: 手机号、邮箱格式

使用示例:
    from typing import Annotated, Optional
    from ycascade.orm import Model
    from ycascade.validators import StringLength, Range, Email

    class Customer(Model):
        __rules__ = {
            "name": Annotated[str, StringLength(min_length=2, max_length=50)],
            "age": Annotated[Optional[int], Range(ge=0, le=150)],
            "email": Annotated[str, Email],
        }

自定义错误类型（phone / email）可在 __validation_messages__ 中覆盖消息：
    __validation_messages__ = {"email.email": "请填写正确的邮箱"}
"""

import re
from typing import Annotated, Optional

from pydantic import Field, StringConstraints
from pydantic.functional_validators import BeforeValidator
from pydantic_core import PydanticCustomError


# ==================== 约束函数 ====================

def StringLength(min_length: int = None, max_length: int = None):
    """字符串长度约束

    Example:
        name: Annotated[str, StringLength(min_length=3, max_length=20)]
    """
    return StringConstraints(min_length=min_length, max_length=max_length)


def RegularExpression(pattern: str):
    """正则表达式约束

    Example:
        code: Annotated[str, RegularExpression(r"^[A-Z]{2}\\d{4}$")]
    """
    return StringConstraints(pattern=pattern)


def Range(ge=None, le=None, gt=None, lt=None):
    """数值范围约束

    Example:
        quantity: Annotated[int, Range(ge=1, le=999)]
    """
    return Field(ge=ge, le=le, gt=gt, lt=lt)


# ==================== 纯验证函数 ====================

# 各地区手机号正则
_PHONE_PATTERNS = {
    "CN": re.compile(r"^1[3-9]\d{9}$"),
    "US": re.compile(r"^\d{10}$"),
    "HK": re.compile(r"^[5-9]\d{7}$"),
}

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_phone(phone: str, region: str = "CN") -> bool:
    if not phone:
        return False
    pattern = _PHONE_PATTERNS.get(region.upper())
    if pattern is None:
        return False
    return bool(pattern.match(phone.strip()))


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    return bool(_EMAIL_PATTERN.match(email.strip()))


def register_phone_region(region: str, pattern: str) -> None:
    """注册新的地区手机号格式"""
    _PHONE_PATTERNS[region.upper()] = re.compile(pattern)


# ==================== Pydantic 验证器 ====================

def _validate_phone(v):
    if v is None:
        return v
    v = str(v).strip()
    if not is_valid_phone(v, region="CN"):
        raise PydanticCustomError("phone", "手机号格式不正确，请输入11位有效手机号")
    return v


def _validate_email(v):
    if v is None:
        return v
    v = str(v).strip()
    if not is_valid_email(v):
        raise PydanticCustomError("email", "邮箱格式不正确")
    return v


def _validate_optional_phone(v):
    if v is None or v == "":
        return None
    return _validate_phone(v)


def _validate_optional_email(v):
    if v is None or v == "":
        return None
    return _validate_email(v)


Phone = BeforeValidator(_validate_phone)
Email = BeforeValidator(_validate_email)
OptionalPhone = BeforeValidator(_validate_optional_phone)
OptionalEmail = BeforeValidator(_validate_optional_email)

# 预组合类型
PhoneStr = Annotated[str, Phone]
EmailStr = Annotated[str, Email]
OptionalPhoneStr = Annotated[Optional[str], OptionalPhone]
OptionalEmailStr = Annotated[Optional[str], OptionalEmail]


__all__ = [
    "StringLength",
    "RegularExpression",
    "Range",
    "Phone",
    "Email",
    "OptionalPhone",
    "OptionalEmail",
    "PhoneStr",
    "EmailStr",
    "OptionalPhoneStr",
    "OptionalEmailStr",
    "is_valid_phone",
    "is_valid_email",
    "register_phone_region",
]
