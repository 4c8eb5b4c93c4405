"""待处理关系 ID

调用方通过 <关系名>_ids 属性提交关联记录 ID，保存时由级联执行器消费：

    order.items_ids = [2, 3, 4]     # 写入 incoming
    order.save()                    # hold: incoming → held；对账成功后清空 held

保存失败时 held 保持不变，便于检查或重试。ID 属性不是表字段，不会被持久化。
"""
from typing import Any, Dict, Iterable, List, Optional

# 实例 __dict__ 中存放 PendingIdentifierSet 的 key
PENDING_ATTRIBUTE = "_pending_identifiers"


def normalize_identifiers(value: Any) -> List[Any]:
    """将输入规范化为有序、去重的 ID 列表

    None → []，标量（含字符串）→ [value]。
    """
    if value is None:
        return []
    if isinstance(value, (str, bytes, int)) or not isinstance(value, Iterable):
        return [value]
    seen = set()
    result = []
    for item in value:
        if item is None or item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


class PendingIdentifierSet:
    """单个实体的待处理关系 ID 缓冲

    Attributes:
        incoming: 调用方刚写入、尚未进入保存流程的 ID
        held: 已被 hold 步骤移入、等待对账的 ID
    """

    def __init__(self):
        self.incoming: Dict[str, List[Any]] = {}
        self.held: Dict[str, List[Any]] = {}

    def assign(self, relation_name: str, ids: Any) -> None:
        self.incoming[relation_name] = normalize_identifiers(ids)

    def hold(self, relation_names: Iterable[str]) -> List[str]:
        """将指定关系的 incoming 移入 held，返回实际移动的关系名"""
        moved = []
        for name in relation_names:
            if name in self.incoming:
                self.held[name] = self.incoming.pop(name)
                moved.append(name)
        return moved

    def held_ids(self, relation_name: str) -> Optional[List[Any]]:
        """held 中的 ID；未提交时返回 None（与空列表 [] 区分）"""
        return self.held.get(relation_name)

    def discard_held(self) -> None:
        self.held.clear()

    def peek(self, relation_name: str) -> Optional[List[Any]]:
        if relation_name in self.incoming:
            return list(self.incoming[relation_name])
        if relation_name in self.held:
            return list(self.held[relation_name])
        return None

    def __bool__(self) -> bool:
        return bool(self.incoming or self.held)

    def __repr__(self) -> str:
        return f"<PendingIdentifierSet incoming={self.incoming} held={self.held}>"


def pending_identifiers(entity) -> PendingIdentifierSet:
    """获取（必要时创建）实体的待处理 ID 缓冲"""
    pending = entity.__dict__.get(PENDING_ATTRIBUTE)
    if pending is None:
        pending = PendingIdentifierSet()
        entity.__dict__[PENDING_ATTRIBUTE] = pending
    return pending


class IdsAttribute:
    """<关系名>_ids 描述符

    写入时记录到待处理缓冲；读取时优先返回待处理值，否则返回当前关联记录的 ID。
    """

    def __init__(self, relation_name: str):
        self.relation_name = relation_name

    def __get__(self, entity, owner=None):
        if entity is None:
            return self
        pending = entity.__dict__.get(PENDING_ATTRIBUTE)
        if pending is not None:
            ids = pending.peek(self.relation_name)
            if ids is not None:
                return ids
        related = getattr(entity, self.relation_name)
        if related is None:
            return []
        if isinstance(related, Iterable):
            return [item.id for item in related]
        return [related.id]

    def __set__(self, entity, value):
        pending_identifiers(entity).assign(self.relation_name, value)

    def __repr__(self) -> str:
        return f"<IdsAttribute {self.relation_name}>"


__all__ = [
    "PENDING_ATTRIBUTE",
    "normalize_identifiers",
    "PendingIdentifierSet",
    "pending_identifiers",
    "IdsAttribute",
]
