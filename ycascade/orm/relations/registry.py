"""关系注册表

每个模型类型持有一个只读的 RelationRegistry：关系名 → RelationBinding（声明顺序）。
注册表在首次读取时构建（需要 SQLAlchemy mapper 已配置），之后不再变化。

关系元数据来自可插拔的 provider：
    - DeclarativeRelationProvider: HasOne / HasMany / BelongsTo / BelongsToMany 字段
    - MapperRelationProvider: 手写 relationship() + __cascaded_relations__ 选项表

使用示例:
    from ycascade.orm.relations import registry_for

    registry = registry_for(Order)
    registry.relation_names()          # ('items', 'invoice', 'tags')
    registry.options("items")          # {'cascade_on_save': True, 'cascade_on_delete': 'delete'}
    registry.binding("items").target   # <class 'OrderItem'>
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import Table, inspect as sa_inspect
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import configure_mappers
from sqlalchemy.orm.interfaces import MANYTOMANY, MANYTOONE, ONETOMANY

from ...config import get_cascade_settings
from ...exceptions import InvalidRelationConfigurationError, UnknownRelationError
from ...log import get_logger
from .types import (
    Cardinality,
    DetachPolicy,
    CASCADE_ON_SAVE,
    CASCADE_ON_DELETE,
    normalize_detach_policy,
)

logger = get_logger("ycascade.orm.relations")

# 模型类上缓存注册表的属性名
REGISTRY_ATTRIBUTE = "_relation_registry"


# ==================== 选项校验 ====================

def merge_options(model, options: Mapping[str, Any]) -> Dict[str, Any]:
    """类型级默认选项（__relation_defaults__）合并在单个关系选项之下"""
    merged = dict(getattr(model, "__relation_defaults__", None) or {})
    merged.update(options)
    return merged


def validate_options(
    model_name: str,
    relation_name: str,
    options: Mapping[str, Any],
    cardinality: Optional[Cardinality] = None,
    require_explicit_detach_policy: Optional[bool] = None,
) -> Dict[str, Any]:
    """校验并规范化关系选项

    cardinality 为 None 时（基数尚未确定）只校验取值类型。

    Raises:
        InvalidRelationConfigurationError: 选项非法
    """
    def _fail(message):
        raise InvalidRelationConfigurationError(
            message, model_name=model_name, relation_name=relation_name
        )

    result = dict(options)

    if CASCADE_ON_SAVE in result and not isinstance(result[CASCADE_ON_SAVE], bool):
        _fail(f"{CASCADE_ON_SAVE} 必须是布尔值，实际为 {result[CASCADE_ON_SAVE]!r}")

    if CASCADE_ON_DELETE in result:
        value = result[CASCADE_ON_DELETE]
        if not isinstance(value, (bool, str)):
            _fail(f"{CASCADE_ON_DELETE} 取值非法: {value!r}")
        try:
            result[CASCADE_ON_DELETE] = normalize_detach_policy(value)
        except ValueError:
            allowed = ", ".join(repr(p.value) for p in DetachPolicy)
            _fail(f"未知的 {CASCADE_ON_DELETE} 策略 {value!r}，可选: {allowed}, True, False")

    if cardinality is None:
        return result

    if cardinality.foreign_key_on_target:
        if result.get(CASCADE_ON_DELETE) == DetachPolicy.DETACH:
            _fail(f'"detach" 仅适用于多对多关系，{cardinality.value} 请使用 "nullify" / "delete" / True')

        if require_explicit_detach_policy is None:
            require_explicit_detach_policy = get_cascade_settings().require_explicit_detach_policy
        if (
            require_explicit_detach_policy
            and CASCADE_ON_SAVE in result
            and CASCADE_ON_DELETE not in result
        ):
            _fail(
                f"参与级联保存的 {cardinality.value} 关系必须显式声明 {CASCADE_ON_DELETE}"
                f"（\"nullify\" / \"delete\" / True 物理删除）"
            )

    return result


# ==================== 数据结构 ====================

@dataclass(frozen=True)
class RelationSpec:
    """provider 给出的关系静态声明（基数可能待 mapper 推导）"""
    name: str
    cardinality: Optional[Cardinality]
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RelationBinding:
    """单个关系的完整绑定信息

    Attributes:
        name: 关系名
        cardinality: 关系基数
        options: 合并后的选项（只读）
        target: 目标模型类
        foreign_key: 外键属性名。ONE_TO_ONE / ONE_TO_MANY 时在目标模型上，
                     MANY_TO_ONE 时在本模型上，MANY_TO_MANY 时为 None
        owner_key: 被外键引用的属性名（通常为 id）
        pivot_table: 多对多中间表
        pivot_foreign_key: 中间表中指向本模型的列名
        pivot_other_key: 中间表中指向目标模型的列名
    """
    name: str
    cardinality: Cardinality
    options: Mapping[str, Any]
    target: Type
    foreign_key: Optional[str] = None
    owner_key: str = "id"
    pivot_table: Optional[Table] = None
    pivot_foreign_key: Optional[str] = None
    pivot_other_key: Optional[str] = None

    @property
    def detach_policy(self):
        return self.options.get(CASCADE_ON_DELETE)

    def coerce_identifiers(self, ids: Sequence[Any]) -> List[Any]:
        """按目标模型主键的 Python 类型转换 ID（"3" → 3），转换后去重

        目标不是映射类或主键类型未知时原样返回。

        Raises:
            ValueError: ID 无法转换为主键类型
        """
        mapper = sa_inspect(self.target, raiseerr=False)
        if mapper is None or not getattr(mapper, "primary_key", None):
            return list(ids)
        try:
            python_type = mapper.primary_key[0].type.python_type
        except NotImplementedError:
            return list(ids)

        result = []
        for value in ids:
            if not isinstance(value, python_type):
                value = python_type(value.strip() if isinstance(value, str) else value)
            if value not in result:
                result.append(value)
        return result


# ==================== Provider ====================

class DeclarativeRelationProvider:
    """读取声明式关系字段（类创建时记录在 __declared_relations__）"""

    def specs(self, model) -> Sequence[RelationSpec]:
        return list((getattr(model, "__declared_relations__", None) or {}).values())


class MapperRelationProvider:
    """读取 __cascaded_relations__ 选项表，基数由 mapper 推导

    使用示例:
        class Order(Model):
            items = relationship("OrderItem")
            __cascaded_relations__ = {
                "items": {"cascade_on_save": True, "cascade_on_delete": "nullify"},
            }
    """

    def specs(self, model) -> Sequence[RelationSpec]:
        return [
            RelationSpec(name, None, dict(options or {}))
            for name, options in cascaded_relation_options(model).items()
        ]


def cascaded_relation_options(model) -> Dict[str, Mapping[str, Any]]:
    """沿 MRO 合并 __cascaded_relations__（基类在前）"""
    merged: Dict[str, Mapping[str, Any]] = {}
    for klass in reversed(model.__mro__):
        merged.update(klass.__dict__.get("__cascaded_relations__", None) or {})
    return merged


DEFAULT_PROVIDERS: Tuple = (DeclarativeRelationProvider(), MapperRelationProvider())


# ==================== 注册表 ====================

def cardinality_of(prop) -> Cardinality:
    """由 RelationshipProperty 推导关系基数"""
    if prop.direction is MANYTOMANY:
        return Cardinality.MANY_TO_MANY
    if prop.direction is MANYTOONE:
        return Cardinality.MANY_TO_ONE
    if prop.direction is ONETOMANY and not prop.uselist:
        return Cardinality.ONE_TO_ONE
    return Cardinality.ONE_TO_MANY


class RelationRegistry:
    """单个模型类型的关系注册表（只读）"""

    def __init__(self, model: Type, bindings: Mapping[str, RelationBinding]):
        self._model = model
        self._bindings = MappingProxyType(dict(bindings))

    @property
    def model(self) -> Type:
        return self._model

    def relation_names(self) -> Tuple[str, ...]:
        """关系名（声明顺序）"""
        return tuple(self._bindings)

    def binding(self, relation_name: str) -> RelationBinding:
        """获取关系绑定

        Raises:
            UnknownRelationError: 未声明的关系
        """
        try:
            return self._bindings[relation_name]
        except KeyError:
            raise UnknownRelationError(self._model.__name__, relation_name) from None

    def options(self, relation_name: str) -> Mapping[str, Any]:
        """获取关系合并后的选项

        Raises:
            UnknownRelationError: 未声明的关系
        """
        return self.binding(relation_name).options

    def __contains__(self, relation_name: str) -> bool:
        return relation_name in self._bindings

    def __iter__(self) -> Iterator[RelationBinding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"<RelationRegistry {self._model.__name__} {list(self._bindings)}>"

    @classmethod
    def build(cls, model: Type, providers: Sequence = DEFAULT_PROVIDERS) -> "RelationRegistry":
        """从 provider 与 mapper 构建注册表

        Raises:
            InvalidRelationConfigurationError: 关系无法解析或选项非法
        """
        try:
            configure_mappers()
        except (sa_exc.ArgumentError, sa_exc.InvalidRequestError, sa_exc.NoForeignKeysError) as e:
            raise InvalidRelationConfigurationError(
                f"关系映射配置失败: {e}", model_name=model.__name__
            ) from e

        mapper = sa_inspect(model)
        bindings: Dict[str, RelationBinding] = {}
        for provider in providers:
            for spec in provider.specs(model):
                if spec.name in bindings:
                    raise InvalidRelationConfigurationError(
                        "关系被重复声明", model_name=model.__name__, relation_name=spec.name
                    )
                bindings[spec.name] = _bind(model, mapper, spec)

        registry = cls(model, bindings)
        logger.debug(f"关系注册表已构建: {registry!r}")
        return registry


def _bind(model, mapper, spec: RelationSpec) -> RelationBinding:
    def _fail(message):
        raise InvalidRelationConfigurationError(
            message, model_name=model.__name__, relation_name=spec.name
        )

    prop = mapper.relationships.get(spec.name)
    if prop is None:
        _fail("不是已映射的 relationship")

    cardinality = cardinality_of(prop)
    if spec.cardinality is not None and spec.cardinality != cardinality:
        _fail(f"声明的基数 {spec.cardinality.value} 与映射推导的 {cardinality.value} 不一致")

    options = validate_options(
        model.__name__, spec.name, merge_options(model, spec.options), cardinality
    )
    target = prop.mapper.class_
    common = dict(
        name=spec.name,
        cardinality=cardinality,
        options=MappingProxyType(options),
        target=target,
    )

    if cardinality is Cardinality.MANY_TO_MANY:
        if len(prop.synchronize_pairs) != 1 or len(prop.secondary_synchronize_pairs) != 1:
            _fail("不支持复合键的多对多关系")
        owner_column, pivot_local = prop.synchronize_pairs[0]
        _, pivot_other = prop.secondary_synchronize_pairs[0]
        return RelationBinding(
            owner_key=mapper.get_property_by_column(owner_column).key,
            pivot_table=prop.secondary,
            pivot_foreign_key=pivot_local.name,
            pivot_other_key=pivot_other.name,
            **common,
        )

    pairs = prop.local_remote_pairs
    if len(pairs) != 1:
        _fail("不支持复合外键关系")
    local_column, remote_column = pairs[0]

    if cardinality is Cardinality.MANY_TO_ONE:
        return RelationBinding(
            foreign_key=mapper.get_property_by_column(local_column).key,
            owner_key=prop.mapper.get_property_by_column(remote_column).key,
            **common,
        )

    return RelationBinding(
        foreign_key=prop.mapper.get_property_by_column(remote_column).key,
        owner_key=mapper.get_property_by_column(local_column).key,
        **common,
    )


def registry_for(model) -> RelationRegistry:
    """获取模型类型的关系注册表（首次读取时构建并缓存在类上）"""
    if not isinstance(model, type):
        model = type(model)
    registry = model.__dict__.get(REGISTRY_ATTRIBUTE)
    if registry is None:
        registry = RelationRegistry.build(model)
        setattr(model, REGISTRY_ATTRIBUTE, registry)
    return registry


__all__ = [
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
]
