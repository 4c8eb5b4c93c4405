"""关系类型与级联选项常量"""

from enum import Enum


class Cardinality(str, Enum):
    """关系基数

    封闭枚举，执行器按基数分派对账策略。
    """

    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_ONE = "many_to_one"
    MANY_TO_MANY = "many_to_many"

    @property
    def is_to_many(self) -> bool:
        return self in (Cardinality.ONE_TO_MANY, Cardinality.MANY_TO_MANY)

    @property
    def foreign_key_on_target(self) -> bool:
        """外键是否位于关联表（目标模型）上"""
        return self in (Cardinality.ONE_TO_ONE, Cardinality.ONE_TO_MANY)


class DetachPolicy(str, Enum):
    """解除关联策略（cascade_on_delete 的字符串取值）

    - NULLIFY: 批量将外键置空
    - DELETE: 逐条调用关联记录自身的 delete()，走完整生命周期
    - DETACH: 仅删除中间表关联（多对多）

    True 或其他真值表示批量物理删除，False 表示不处理。
    """

    NULLIFY = "nullify"
    DELETE = "delete"
    DETACH = "detach"


# 便捷常量
NULLIFY = DetachPolicy.NULLIFY
DELETE = DetachPolicy.DELETE
DETACH = DetachPolicy.DETACH

# 选项名
CASCADE_ON_SAVE = "cascade_on_save"
CASCADE_ON_DELETE = "cascade_on_delete"


class _AnyValue:
    """谓词通配值：匹配选项的任意取值（包括 None）"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY"

    def __reduce__(self):
        return (_AnyValue, ())


ANY = _AnyValue()


def normalize_detach_policy(value):
    """将 cascade_on_delete 取值规范化：字符串转为 DetachPolicy，其余原样返回

    Raises:
        ValueError: 未知的字符串策略
    """
    if isinstance(value, DetachPolicy) or not isinstance(value, str):
        return value
    return DetachPolicy(value)


__all__ = [
    "Cardinality",
    "DetachPolicy",
    "NULLIFY",
    "DELETE",
    "DETACH",
    "CASCADE_ON_SAVE",
    "CASCADE_ON_DELETE",
    "ANY",
    "normalize_detach_policy",
]
