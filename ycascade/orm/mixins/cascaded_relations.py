"""级联关系 Mixin

save() 经保存流水线后，由级联执行器保存实体自身并按声明顺序对账
参与级联保存的关系；delete() 先按 cascade_on_delete 处理关联记录再删除自身。

使用示例:
    class Order(CascadedRelationsMixin, CoreModel):
        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="nullify")

    order.items_ids = [1, 2]
    order.save(commit=True)
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from ..pipeline import SaveContext, SavePipeline, default_save_pipeline
from ..relations.backend import SessionBackend
from ..relations.executor import CascadeExecutor
from ..relations.planner import SAVE_PREDICATE, DELETE_PREDICATE, select_relations
from ..relations.registry import RelationRegistry, registry_for

# 模型类上缓存保存流水线的属性名
PIPELINE_ATTRIBUTE = "_save_pipeline"


class CascadedRelationsMixin:
    """为模型提供级联保存/删除（需与 CoreModel 一起使用）"""

    @classmethod
    def relation_registry(cls) -> RelationRegistry:
        return registry_for(cls)

    @classmethod
    def relations_cascaded_on_save(cls) -> Tuple[str, ...]:
        return select_relations(registry_for(cls), SAVE_PREDICATE)

    @classmethod
    def relations_cascaded_on_delete(cls) -> Tuple[str, ...]:
        return select_relations(registry_for(cls), DELETE_PREDICATE)

    @classmethod
    def configure_save_pipeline(cls, pipeline: SavePipeline) -> None:
        """子类覆盖以插入、替换或移除保存步骤"""

    @classmethod
    def save_pipeline(cls) -> SavePipeline:
        pipeline = cls.__dict__.get(PIPELINE_ATTRIBUTE)
        if pipeline is None:
            pipeline = default_save_pipeline()
            cls.configure_save_pipeline(pipeline)
            setattr(cls, PIPELINE_ATTRIBUTE, pipeline)
        return pipeline

    def cascade_executor(self) -> CascadeExecutor:
        return CascadeExecutor(registry_for(type(self)), SessionBackend(self.session))

    def save(self, commit: bool = False, relations: Optional[Iterable[str]] = None):
        """保存对象并级联处理关系

        Args:
            commit: 是否立即提交，默认False
            relations: 参与级联的关系名，默认为所有声明了 cascade_on_save 的关系

        Raises:
            ModelValidationError: 验证失败（未写入数据库）
            CascadeFailureError: 某个关系对账失败（已回滚，暂存的关系 ID 保留）
        """
        names = tuple(relations) if relations is not None else self.relations_cascaded_on_save()
        executor = self.cascade_executor()
        context = SaveContext(entity=self, relation_names=names, executor=executor)
        type(self).save_pipeline().run(context)
        executor.persist_with_cascade(self, names)
        self._commit(commit)
        return self

    def delete(self, commit: bool = False, relations: Optional[Iterable[str]] = None):
        """按 cascade_on_delete 处理关联记录后删除对象"""
        names = tuple(relations) if relations is not None else self.relations_cascaded_on_delete()
        self.cascade_executor().delete(self, names)
        self._commit(commit)


__all__ = ["CascadedRelationsMixin"]
