"""级联执行器

按关系注册表与选项，在一次保存/删除中同步关联记录：

    save:   hold → persist self → reconcile（声明顺序）→ commit
    delete: 按 cascade_on_delete 处理关联记录 → 删除自身 → commit

整个过程位于一个事务范围内（SessionBackend 为 SAVEPOINT），
任何一步失败都会回滚，且实体上暂存的关系 ID 保持不变。

使用示例:
    from ycascade.orm.relations import CascadeExecutor, SessionBackend, registry_for

    executor = CascadeExecutor(registry_for(Order), SessionBackend(session))
    order.items_ids = [2, 3]
    results = executor.save(order, ["items"])
    results["items"].attached    # [3]
    results["items"].detached    # [1]
"""
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from ...config import CascadeSettings, get_cascade_settings
from ...exceptions import CascadeFailureError
from ...log import get_logger
from .backend import PersistenceBackend, iter_related
from .pending import normalize_identifiers, pending_identifiers
from .registry import RelationBinding, RelationRegistry
from .types import Cardinality, DetachPolicy

logger = get_logger("ycascade.orm.cascade")

# 当前调用链中正在级联保存的实体（id(entity)），防止双向关系无限递归
_saving: ContextVar[FrozenSet[int]] = ContextVar("ycascade_cascade_saving", default=frozenset())


@dataclass
class SyncResult:
    """单个关系的对账结果"""
    attached: List[Any] = field(default_factory=list)
    detached: List[Any] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.attached or self.detached)


def ordered_difference(left: Sequence[Any], right: Iterable[Any]) -> List[Any]:
    """left − right，保持 left 的顺序"""
    excluded = set(right)
    return [item for item in left if item not in excluded]


class CascadeExecutor:
    """单个模型类型的级联执行器

    Args:
        registry: 模型的关系注册表
        backend: 持久化后端
        settings: 级联配置，默认使用全局配置
    """

    def __init__(
        self,
        registry: RelationRegistry,
        backend: PersistenceBackend,
        settings: Optional[CascadeSettings] = None,
    ):
        self.registry = registry
        self.backend = backend
        self.settings = settings or get_cascade_settings()

    # ==================== 保存 ====================

    def hold(self, entity, relation_names: Iterable[str]) -> List[str]:
        """将指定关系的待处理 ID 移入暂存区"""
        names = list(relation_names)
        for name in names:
            self.registry.binding(name)
        return pending_identifiers(entity).hold(names)

    def save(self, entity, relation_names: Iterable[str]) -> Dict[str, SyncResult]:
        """hold + persist_with_cascade"""
        names = list(relation_names)
        self.hold(entity, names)
        return self.persist_with_cascade(entity, names)

    def persist_with_cascade(self, entity, relation_names: Iterable[str]) -> Dict[str, SyncResult]:
        """保存实体自身并按声明顺序对账关系

        Raises:
            UnknownRelationError: 关系未声明
            CascadeFailureError: 某个关系对账失败（原始异常见 .cause）
        """
        bindings = [self.registry.binding(name) for name in relation_names]
        model_name = type(entity).__name__
        results: Dict[str, SyncResult] = {}

        token = _saving.set(_saving.get() | {id(entity)})
        self.backend.begin_transaction(entity)
        try:
            self.backend.persist(entity)
            for binding in bindings:
                try:
                    results[binding.name] = self._reconcile_relation(entity, binding)
                except Exception as e:
                    raise CascadeFailureError(binding.name, e) from e
                self.backend.expire_relation(entity, binding)
            self.backend.commit()
        except Exception:
            self.backend.rollback()
            logger.warning(f"{model_name} 级联保存失败，已回滚，暂存的关系 ID 保留")
            raise
        finally:
            _saving.reset(token)

        pending_identifiers(entity).discard_held()
        if results:
            logger.debug(
                f"{model_name}(id={entity.id}) 级联保存完成: "
                + ", ".join(f"{name} +{len(r.attached)}/-{len(r.detached)}" for name, r in results.items())
            )
        return results

    def _reconcile_relation(self, entity, binding: RelationBinding) -> SyncResult:
        ids = pending_identifiers(entity).held_ids(binding.name)
        if ids is not None:
            if self.settings.warn_on_ambiguous_source and self.backend.related_modified(entity, binding):
                logger.warning(
                    f"{type(entity).__name__}.{binding.name} 同时存在 ID 输入和已修改的关联对象，"
                    f"以 ID 输入为准"
                )
            return self.reconcile(entity, binding, ids)

        related = self.backend.loaded_related(entity, binding)
        if related is not None:
            self.cascade_records(entity, binding, related)
        return SyncResult()

    # ==================== 按 ID 对账 ====================

    def reconcile(self, entity, binding: RelationBinding, ids: Any) -> SyncResult:
        """将关系同步为给定 ID 集合

        ID 先按目标模型主键类型转换后再求差集。
        多对多整体替换成员，结果的 attached 为替换后的完整成员列表。
        """
        requested = binding.coerce_identifiers(normalize_identifiers(ids))

        if binding.cardinality is Cardinality.MANY_TO_MANY:
            self.backend.replace_membership(entity, binding, requested)
            return SyncResult(attached=requested)

        if binding.cardinality is Cardinality.MANY_TO_ONE:
            value = requested[0] if requested else None
            setattr(entity, binding.foreign_key, value)
            self.backend.persist(entity)
            return SyncResult(attached=[value] if value is not None else [])

        current = self.backend.list_current_foreign_key_targets(entity, binding)
        to_attach = ordered_difference(requested, current)
        to_detach = ordered_difference(current, requested)
        self.attach(entity, binding, to_attach)
        self.detach(binding, to_detach)
        return SyncResult(attached=to_attach, detached=to_detach)

    def attach(self, entity, binding: RelationBinding, ids: Sequence[Any]) -> None:
        if not ids:
            return
        owner_value = getattr(entity, binding.owner_key)
        count = self.backend.update_where_id_in(binding.target, ids, {binding.foreign_key: owner_value})
        logger.debug(f"{binding.name}: 关联 {count} 条 {binding.target.__name__}")

    def detach(self, binding: RelationBinding, ids: Sequence[Any]) -> None:
        """按 cascade_on_delete 策略解除关联"""
        if not ids:
            return
        policy = binding.detach_policy
        target = binding.target
        if policy == DetachPolicy.NULLIFY:
            self.backend.update_where_id_in(target, ids, {binding.foreign_key: None})
        elif policy == DetachPolicy.DELETE:
            for record in self.backend.find_where_id_in(target, ids):
                self._delete_record(record)
        else:
            self.backend.delete_where_id_in(target, ids)
        logger.debug(f"{binding.name}: 解除 {len(ids)} 条 {target.__name__}（{policy!r}）")

    # ==================== 按对象级联 ====================

    def cascade_records(self, entity, binding: RelationBinding, related) -> None:
        """对已加载的关联对象逐个执行保存"""
        if binding.cardinality is Cardinality.MANY_TO_ONE:
            self._save_record(related)
            self.backend.associate(entity, binding, related)
            return
        for record in iter_related(related):
            self._save_record(record)

    def _save_record(self, record) -> None:
        if id(record) in _saving.get():
            return
        save = getattr(record, "save", None)
        if callable(save):
            save()
        else:
            self.backend.persist(record)

    def _delete_record(self, record) -> None:
        delete = getattr(record, "delete", None)
        if callable(delete):
            delete()
        else:
            self.backend.remove(record)

    # ==================== 删除 ====================

    def delete(self, entity, relation_names: Iterable[str]) -> None:
        """按 cascade_on_delete 处理关联记录后删除实体

        - "delete": 逐条调用关联记录的 delete()
        - "nullify": 批量将外键置空
        - True / 其他真值: 批量物理删除（多对多为移除中间表行）
        - False / 未设置 / 多对一: 不处理

        Raises:
            CascadeFailureError: 某个关系处理失败
        """
        bindings = [self.registry.binding(name) for name in relation_names]
        model_name = type(entity).__name__

        self.backend.begin_transaction(entity)
        try:
            for binding in bindings:
                try:
                    self._cascade_delete(entity, binding)
                except Exception as e:
                    raise CascadeFailureError(binding.name, e) from e
                self.backend.expire_relation(entity, binding)
            self.backend.remove(entity)
            self.backend.commit()
        except Exception:
            self.backend.rollback()
            logger.warning(f"{model_name} 级联删除失败，已回滚")
            raise

    def _cascade_delete(self, entity, binding: RelationBinding) -> None:
        policy = binding.detach_policy
        if not policy or binding.cardinality is Cardinality.MANY_TO_ONE:
            return
        if binding.cardinality is Cardinality.MANY_TO_MANY:
            self.backend.replace_membership(entity, binding, [])
            return
        self.detach(binding, self.backend.list_current_foreign_key_targets(entity, binding))


__all__ = [
    "CascadeExecutor",
    "SyncResult",
    "ordered_difference",
]
