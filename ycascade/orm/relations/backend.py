"""持久化后端

级联执行器只通过 PersistenceBackend 接口访问存储，便于在单元测试中替换。
SessionBackend 是基于 SQLAlchemy Session 的实现，事务范围使用 SAVEPOINT
（Session.begin_nested），因此级联保存可以嵌套在调用方的外层事务中。
"""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from sqlalchemy import select, update, delete, inspect as sa_inspect
from sqlalchemy.orm import Session

from ...log import get_logger
from .registry import RelationBinding

logger = get_logger("ycascade.orm.backend")


@runtime_checkable
class PersistenceBackend(Protocol):
    """级联执行器所需的存储操作"""

    def begin_transaction(self, entity=None) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def persist(self, entity) -> None: ...

    def remove(self, entity) -> None: ...

    def update_where_id_in(self, model, ids: Sequence[Any], values: Mapping[str, Any]) -> int: ...

    def delete_where_id_in(self, model, ids: Sequence[Any]) -> int: ...

    def find_where_id_in(self, model, ids: Sequence[Any]) -> List[Any]: ...

    def list_current_foreign_key_targets(self, entity, binding: RelationBinding) -> List[Any]: ...

    def replace_membership(self, entity, binding: RelationBinding, ids: Sequence[Any]) -> None: ...

    def associate(self, entity, binding: RelationBinding, related) -> None: ...

    def loaded_related(self, entity, binding: RelationBinding) -> Optional[Any]: ...

    def related_modified(self, entity, binding: RelationBinding) -> bool: ...

    def expire_relation(self, entity, binding: RelationBinding) -> None: ...


class SessionBackend:
    """基于 SQLAlchemy Session 的持久化后端

    每次 begin_transaction() 开启一个 SAVEPOINT，commit() / rollback()
    按后进先出关闭。外层事务的提交由调用方（或模型的 save(commit=True)）负责。

    使用示例:
        backend = SessionBackend(session)
        backend.begin_transaction(order)
        try:
            backend.persist(order)
            backend.commit()
        except Exception:
            backend.rollback()
            raise
    """

    def __init__(self, session: Session):
        self.session = session
        self._savepoints = []

    # ==================== 事务 ====================

    def begin_transaction(self, entity=None) -> None:
        """开启 SAVEPOINT

        begin_nested() 会先 flush 整个会话。传入 entity 时，其关联图上尚未 flush 的
        对象先移出会话，SAVEPOINT 开启后再放回，这些修改只会写入 SAVEPOINT 内，
        回滚时一并撤销。
        """
        detached = _detach_unflushed(self.session, entity) if entity is not None else None
        try:
            savepoint = self.session.begin_nested()
        except Exception:
            if detached is not None:
                detached.restore(self.session)
            raise
        self._savepoints.append(savepoint)
        if detached is not None:
            detached.restore(self.session)

    def commit(self) -> None:
        savepoint = self._savepoints.pop()
        savepoint.commit()

    def rollback(self) -> None:
        savepoint = self._savepoints.pop()
        # flush 失败时 SQLAlchemy 可能已自行回滚该 SAVEPOINT
        if self.session.get_nested_transaction() is savepoint:
            savepoint.rollback()

    # ==================== 写入 ====================

    def persist(self, entity) -> None:
        self.session.add(entity)
        self.session.flush()

    def remove(self, entity) -> None:
        self.session.delete(entity)
        self.session.flush()

    def update_where_id_in(self, model, ids: Sequence[Any], values: Mapping[str, Any]) -> int:
        if not ids:
            return 0
        stmt = (
            update(model)
            .where(model.id.in_(list(ids)))
            .values(**dict(values))
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def delete_where_id_in(self, model, ids: Sequence[Any]) -> int:
        if not ids:
            return 0
        stmt = (
            delete(model)
            .where(model.id.in_(list(ids)))
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount

    # ==================== 读取 ====================

    def find_where_id_in(self, model, ids: Sequence[Any]) -> List[Any]:
        if not ids:
            return []
        stmt = select(model).where(model.id.in_(list(ids))).order_by(model.id)
        return list(self.session.scalars(stmt))

    def list_current_foreign_key_targets(self, entity, binding: RelationBinding) -> List[Any]:
        target = binding.target
        owner_value = getattr(entity, binding.owner_key)
        if owner_value is None:
            return []
        stmt = (
            select(target.id)
            .where(getattr(target, binding.foreign_key) == owner_value)
            .order_by(target.id)
        )
        return list(self.session.scalars(stmt))

    # ==================== 关系 ====================

    def replace_membership(self, entity, binding: RelationBinding, ids: Sequence[Any]) -> None:
        """以给定 ID 集合整体替换多对多成员（中间表行由 SQLAlchemy 增删）"""
        records = self.find_where_id_in(binding.target, ids)
        setattr(entity, binding.name, records)
        self.session.flush()

    def associate(self, entity, binding: RelationBinding, related) -> None:
        """将多对一外键指向 related（None 表示解除）"""
        value = None if related is None else getattr(related, binding.owner_key)
        setattr(entity, binding.foreign_key, value)
        self.session.flush()

    def loaded_related(self, entity, binding: RelationBinding) -> Optional[Any]:
        """已加载到内存的关联对象；未加载时返回 None，不触发懒加载"""
        if binding.name in sa_inspect(entity).unloaded:
            return None
        return getattr(entity, binding.name)

    def related_modified(self, entity, binding: RelationBinding) -> bool:
        """内存中的关联对象是否被修改过（自加载 / 上次 flush 以来）"""
        state = sa_inspect(entity)
        if binding.name in state.unloaded:
            return False
        return state.attrs[binding.name].history.has_changes()

    def expire_relation(self, entity, binding: RelationBinding) -> None:
        """使关系属性失效，下次访问时从数据库重新加载"""
        if sa_inspect(entity).persistent:
            self.session.expire(entity, [binding.name])


class _DetachedObjects:
    """暂时移出会话、尚未 flush 的对象"""

    def __init__(self):
        self.objects: List[Any] = []

    def restore(self, session: Session) -> None:
        for obj in self.objects:
            session.add(obj)


def _detach_unflushed(session: Session, entity) -> _DetachedObjects:
    """将 entity 关联图上尚未 flush 的对象暂时移出会话

    沿关系属性的修改历史遍历；pending 或已修改的对象被 expunge。
    修改保留在对象状态中，重新 add 后照常 flush。
    """
    detached = _DetachedObjects()
    seen = set()
    queue = [entity]
    while queue:
        obj = queue.pop(0)
        if obj is None or id(obj) in seen:
            continue
        seen.add(id(obj))
        state = sa_inspect(obj, raiseerr=False)
        if state is None:
            continue

        for key in state.mapper.relationships.keys():
            history = state.attrs[key].history
            queue.extend(history.added)
            queue.extend(history.deleted)

        if state.session_id != session.hash_key:
            continue
        if state.pending or (state.persistent and state.modified):
            session.expunge(obj)
            detached.objects.append(obj)
    return detached


def iter_related(related) -> Iterable[Any]:
    """将单个对象 / 集合统一为可迭代对象"""
    if related is None:
        return ()
    if isinstance(related, Iterable) and not hasattr(related, "__table__"):
        return list(related)
    return (related,)


__all__ = [
    "PersistenceBackend",
    "SessionBackend",
    "iter_related",
]
