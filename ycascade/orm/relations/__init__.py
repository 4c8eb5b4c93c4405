"""关系与级联模块

- 声明式关系字段: HasOne, HasMany, BelongsTo, BelongsToMany
- 关系注册表: registry_for, RelationRegistry, RelationBinding
- 级联规划: select_relations, ANY
- 级联执行: CascadeExecutor, SessionBackend

使用示例:
    from ycascade.orm import Model
    from ycascade.orm.relations import HasMany, BelongsToMany

    class Order(Model):
        __tablename__ = "orders"
        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")
        tags = BelongsToMany("Tag", target_table="tags", cascade_on_save=True)

    order.items_ids = [1, 2]
    order.tags_ids = [5]
    order.save(commit=True)
"""

from .types import (
    Cardinality,
    DetachPolicy,
    NULLIFY,
    DELETE,
    DETACH,
    CASCADE_ON_SAVE,
    CASCADE_ON_DELETE,
    ANY,
    normalize_detach_policy,
)
from .fields import (
    HasOne,
    HasMany,
    BelongsTo,
    BelongsToMany,
    CARDINALITY_INFO_KEY,
    RELATION_CONFIG_TYPES,
    collect_relation_configs,
    process_relation_fields,
)
from .registry import (
    RelationSpec,
    RelationBinding,
    RelationRegistry,
    DeclarativeRelationProvider,
    MapperRelationProvider,
    DEFAULT_PROVIDERS,
    cardinality_of,
    cascaded_relation_options,
    merge_options,
    validate_options,
    registry_for,
)
from .planner import SAVE_PREDICATE, DELETE_PREDICATE, matches, select_relations
from .pending import (
    normalize_identifiers,
    PendingIdentifierSet,
    pending_identifiers,
    IdsAttribute,
)
from .backend import PersistenceBackend, SessionBackend
from .executor import CascadeExecutor, SyncResult, ordered_difference

__all__ = [
    # 类型
    "Cardinality",
    "DetachPolicy",
    "NULLIFY",
    "DELETE",
    "DETACH",
    "CASCADE_ON_SAVE",
    "CASCADE_ON_DELETE",
    "ANY",
    "normalize_detach_policy",
    # 字段
    "HasOne",
    "HasMany",
    "BelongsTo",
    "BelongsToMany",
    "CARDINALITY_INFO_KEY",
    "RELATION_CONFIG_TYPES",
    "collect_relation_configs",
    "process_relation_fields",
    # 注册表
    "RelationSpec",
    "RelationBinding",
    "RelationRegistry",
    "DeclarativeRelationProvider",
    "MapperRelationProvider",
    "DEFAULT_PROVIDERS",
    "cardinality_of",
    "cascaded_relation_options",
    "merge_options",
    "validate_options",
    "registry_for",
    # 规划
    "SAVE_PREDICATE",
    "DELETE_PREDICATE",
    "matches",
    "select_relations",
    # 待处理 ID
    "normalize_identifiers",
    "PendingIdentifierSet",
    "pending_identifiers",
    "IdsAttribute",
    # 执行
    "PersistenceBackend",
    "SessionBackend",
    "CascadeExecutor",
    "SyncResult",
    "ordered_difference",
]
