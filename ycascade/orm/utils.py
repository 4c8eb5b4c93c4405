"""ORM 工具函数

命名转换：类名 → 表名、表名 → 外键列名、关系名 → ID 输入属性名。
"""
import re


def to_snake_case(name: str, remove_model_suffix: bool = False) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("OrderItem")
        'order_item'
        >>> to_snake_case("APIClient")
        'api_client'
        >>> to_snake_case("OrderModel", remove_model_suffix=True)
        'order'
    """
    if remove_model_suffix and name.endswith('Model'):
        name = name[:-5]
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    result = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', result)
    return result.lower()


def singularize(name: str) -> str:
    """简单的英文单数形式（ies → y，去掉结尾 s，ss 结尾不处理）

    Examples:
        >>> singularize("categories")
        'category'
        >>> singularize("address")
        'address'
    """
    if name.endswith('ies'):
        return name[:-3] + 'y'
    elif name.endswith('s') and not name.endswith('ss'):
        return name[:-1]
    return name


def foreign_key_name(table_name: str) -> str:
    """由被引用表名生成外键列名

    Examples:
        >>> foreign_key_name("orders")
        'order_id'
        >>> foreign_key_name("order_item")
        'order_item_id'
    """
    return f"{singularize(table_name)}_id"


def ids_attribute_name(relation_name: str, suffix: str = "_ids") -> str:
    """关系名对应的 ID 输入属性名，如 items -> items_ids"""
    return f"{relation_name}{suffix}"


def table_name_for(target) -> str:
    """获取目标模型的表名；字符串目标按类名推导"""
    if isinstance(target, str):
        return to_snake_case(target)
    return target.__tablename__


__all__ = [
    "to_snake_case",
    "singularize",
    "foreign_key_name",
    "ids_attribute_name",
    "table_name_for",
]
