"""验证 Mixin

模型通过 __rules__ 声明属性的 pydantic 类型（可配合 Annotated 约束），
保存流水线的 validate 步骤调用 validate()，失败时抛出 ModelValidationError，
数据不会写入数据库。

使用示例:
    from typing import Annotated, Optional
    from ycascade.orm import Model, rule
    from ycascade.validators import StringLength, Range

    class Product(Model):
        __rules__ = {
            "name": Annotated[str, StringLength(min_length=2, max_length=50)],
            "stock": Annotated[Optional[int], Range(ge=0)],
        }
        __validation_messages__ = {
            "name.string_too_short": "{attribute}至少 {min_length} 个字符",
            "missing": "{attribute}不能为空",
        }
        __validation_attribute_names__ = {"name": "商品名称"}

        @rule("name")
        def name_not_reserved(self, value):
            if value == "admin":
                raise ValueError("{attribute}不可使用保留字")

    product = Product(name="a")
    product.validation_errors().first("name")   # "商品名称至少 2 个字符"
"""

from __future__ import annotations

import types
from typing import Annotated, Any, Callable, ClassVar, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import ValidationError, create_model

from ...exceptions import ModelValidationError

# 模型类上缓存 pydantic 验证模型 / 自定义规则的属性名
VALIDATION_MODEL_ATTRIBUTE = "_validation_model"
RULE_METHODS_ATTRIBUTE = "_validation_rule_methods"

# 自定义规则函数上记录字段名的属性
RULE_FIELDS_ATTRIBUTE = "__validation_rule_fields__"


class ValidationErrors:
    """验证错误集合：字段名 → 错误消息列表（保持添加顺序）"""

    def __init__(self):
        self._errors: Dict[str, List[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def errors(self, field: Optional[str] = None) -> List[str]:
        """某个字段的错误；不指定字段时返回全部"""
        if field is None:
            return self.all()
        return list(self._errors.get(field, []))

    def first(self, field: Optional[str] = None) -> Optional[str]:
        messages = self.errors(field)
        return messages[0] if messages else None

    def has(self, field: Optional[str] = None) -> bool:
        if field is None:
            return bool(self._errors)
        return bool(self._errors.get(field))

    def all(self) -> List[str]:
        return [message for messages in self._errors.values() for message in messages]

    def fields(self) -> List[str]:
        return list(self._errors)

    def to_dict(self) -> Dict[str, List[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self.all())

    def __repr__(self) -> str:
        return f"<ValidationErrors {self._errors}>"


def rule(*fields: str) -> Callable:
    """声明模型级自定义规则

    被装饰的方法签名为 (self, value)，校验失败时抛出 ValueError(消息)。
    消息可以使用 {attribute} 占位符。
    """
    if not fields:
        raise ValueError("rule() 至少需要一个字段名")

    def decorator(func):
        setattr(func, RULE_FIELDS_ATTRIBUTE, fields)
        return func
    return decorator


def _allows_none(annotation) -> bool:
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    if annotation is Any or annotation is None or annotation is type(None):
        return True
    if get_origin(annotation) in (Union, types.UnionType):
        return type(None) in get_args(annotation)
    return False


def _format(template: str, attribute: str, context: Dict[str, Any]) -> str:
    message = template.replace("{attribute}", attribute)
    for key, value in context.items():
        message = message.replace("{" + key + "}", str(value))
    return message


class ValidatingMixin:
    """为模型提供基于 pydantic 的保存前验证"""

    __rules__: ClassVar[Dict[str, Any]] = {}
    __validation_messages__: ClassVar[Dict[str, str]] = {}
    __validation_attribute_names__: ClassVar[Dict[str, str]] = {}

    @classmethod
    def validation_rules(cls) -> Dict[str, Any]:
        """沿 MRO 合并 __rules__（子类覆盖同名字段）"""
        rules: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            rules.update(klass.__dict__.get("__rules__", None) or {})
        return rules

    @classmethod
    def validation_model(cls):
        """由 __rules__ 生成的 pydantic 模型（按类缓存）"""
        model = cls.__dict__.get(VALIDATION_MODEL_ATTRIBUTE)
        if model is None:
            fields = {
                name: (annotation, None if _allows_none(annotation) else ...)
                for name, annotation in cls.validation_rules().items()
            }
            model = create_model(f"{cls.__name__}Rules", **fields)
            setattr(cls, VALIDATION_MODEL_ATTRIBUTE, model)
        return model

    @classmethod
    def validation_rule_methods(cls) -> List[Tuple[str, str]]:
        """(字段名, 方法名) 列表"""
        methods = cls.__dict__.get(RULE_METHODS_ATTRIBUTE)
        if methods is None:
            methods = []
            seen = set()
            for klass in reversed(cls.__mro__):
                for attr_name, value in vars(klass).items():
                    fields = getattr(value, RULE_FIELDS_ATTRIBUTE, None)
                    if not fields or attr_name in seen:
                        continue
                    seen.add(attr_name)
                    methods.extend((field, attr_name) for field in fields)
            setattr(cls, RULE_METHODS_ATTRIBUTE, methods)
        return methods

    @classmethod
    def attribute_display_name(cls, field: str) -> str:
        return (cls.__validation_attribute_names__ or {}).get(field, field)

    def _validation_message(
        self, field: str, error_type: str, default: str, context=None, prefix_default: bool = True
    ) -> str:
        messages = type(self).__validation_messages__ or {}
        template = messages.get(f"{field}.{error_type}") or messages.get(error_type)
        attribute = self.attribute_display_name(field)
        if template is None:
            if not prefix_default:
                return _format(default, attribute, context or {})
            return f"{attribute}: {_format(default, attribute, context or {})}"
        return _format(template, attribute, context or {})

    def validation_errors(self) -> ValidationErrors:
        """执行全部规则，返回错误集合（无错误时为空集合）"""
        errors = ValidationErrors()
        rules = self.validation_rules()

        if rules:
            data = {}
            for name in rules:
                value = getattr(self, name, None)
                if value is not None:
                    data[name] = value
            try:
                self.validation_model().model_validate(data)
            except ValidationError as e:
                for error in e.errors():
                    field = str(error["loc"][0]) if error["loc"] else "__root__"
                    errors.add(
                        field,
                        self._validation_message(field, error["type"], error["msg"], error.get("ctx")),
                    )

        for field, method_name in self.validation_rule_methods():
            if errors.has(field):
                continue
            try:
                getattr(self, method_name)(getattr(self, field, None))
            except ValueError as e:
                errors.add(field, self._validation_message(field, method_name, str(e), prefix_default=False))

        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def validate(self) -> None:
        """验证失败时抛出 ModelValidationError"""
        errors = self.validation_errors()
        if errors:
            raise ModelValidationError(errors)


__all__ = [
    "ValidatingMixin",
    "ValidationErrors",
    "rule",
]
