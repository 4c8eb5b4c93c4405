"""验证约束模块

使用示例:
    from ycascade.validators import StringLength, Range, Email, Phone
"""

from .constraints import (
    StringLength,
    RegularExpression,
    Range,
    Phone,
    Email,
    OptionalPhone,
    OptionalEmail,
    PhoneStr,
    EmailStr,
    OptionalPhoneStr,
    OptionalEmailStr,
    is_valid_phone,
    is_valid_email,
    register_phone_region,
)

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
