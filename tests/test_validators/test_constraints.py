"""验证约束测试"""

from typing import Annotated

import pytest
from pydantic import TypeAdapter, ValidationError

from ycascade.validators import (
    EmailStr,
    OptionalEmailStr,
    OptionalPhoneStr,
    PhoneStr,
    Range,
    RegularExpression,
    StringLength,
    is_valid_email,
    is_valid_phone,
    register_phone_region,
)


class TestValidationFunctions:
    """纯验证函数测试"""

    @pytest.mark.parametrize("phone", ["13812345678", " 19900001111 "])
    def test_valid_cn_phone(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["", "12812345678", "1381234567"])
    def test_invalid_cn_phone(self, phone):
        assert not is_valid_phone(phone)

    def test_unknown_region(self):
        assert not is_valid_phone("13812345678", region="XX")

    def test_register_region(self):
        register_phone_region("sg", r"^[89]\d{7}$")

        assert is_valid_phone("81234567", region="SG")

    def test_email(self):
        assert is_valid_email("dev@example.com")
        assert not is_valid_email("dev@")
        assert not is_valid_email("")


class TestAnnotatedConstraints:
    """Annotated 约束测试"""

    def test_string_length(self):
        adapter = TypeAdapter(Annotated[str, StringLength(min_length=2, max_length=4)])

        assert adapter.validate_python("abc") == "abc"
        with pytest.raises(ValidationError):
            adapter.validate_python("a")

    def test_regular_expression(self):
        adapter = TypeAdapter(Annotated[str, RegularExpression(r"^[A-Z]{2}\d{2}$")])

        assert adapter.validate_python("AB12") == "AB12"
        with pytest.raises(ValidationError):
            adapter.validate_python("ab12")

    def test_range(self):
        adapter = TypeAdapter(Annotated[int, Range(ge=1, le=9)])

        assert adapter.validate_python(9) == 9
        with pytest.raises(ValidationError):
            adapter.validate_python(0)

    def test_phone_error_type(self):
        with pytest.raises(ValidationError) as exc_info:
            TypeAdapter(PhoneStr).validate_python("123")

        assert exc_info.value.errors()[0]["type"] == "phone"

    def test_email_strips_whitespace(self):
        assert TypeAdapter(EmailStr).validate_python(" dev@example.com ") == "dev@example.com"

    def test_optional_variants_accept_empty(self):
        assert TypeAdapter(OptionalPhoneStr).validate_python("") is None
        assert TypeAdapter(OptionalEmailStr).validate_python(None) is None
