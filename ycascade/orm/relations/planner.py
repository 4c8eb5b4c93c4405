"""级联规划

按选项谓词从注册表中挑选需要级联处理的关系。

匹配规则：谓词中至少有一个 key 出现在关系的（合并后）选项里，且
关系的取值等于谓词取值，或谓词取值为通配 ANY（匹配任意取值，包括 None）。
与谓词没有任何共同 key 的关系永不匹配。

使用示例:
    from ycascade.orm.relations import ANY, select_relations, registry_for

    select_relations(registry_for(Order), {"cascade_on_save": ANY})
    # ('items', 'tags')   notes 未声明 cascade_on_save，不参与
"""
from typing import Any, Mapping, Tuple

from .registry import RelationRegistry
from .types import ANY, CASCADE_ON_SAVE, CASCADE_ON_DELETE

# save() / delete() 使用的谓词
SAVE_PREDICATE = {CASCADE_ON_SAVE: ANY}
DELETE_PREDICATE = {CASCADE_ON_DELETE: ANY}


def matches(options: Mapping[str, Any], predicate: Mapping[str, Any]) -> bool:
    """判断一个关系的选项是否满足谓词"""
    for key, expected in predicate.items():
        if key not in options:
            continue
        if expected is ANY or options[key] == expected:
            return True
    return False


def select_relations(registry: RelationRegistry, predicate: Mapping[str, Any]) -> Tuple[str, ...]:
    """返回满足谓词的关系名（声明顺序）"""
    return tuple(
        binding.name
        for binding in registry
        if matches(binding.options, predicate)
    )


__all__ = [
    "SAVE_PREDICATE",
    "DELETE_PREDICATE",
    "matches",
    "select_relations",
]
