"""声明式关系字段

用类型化的字段声明关系，类创建时自动生成 SQLAlchemy relationship、
外键列与中间表，并在定义阶段校验级联选项。

使用示例:
    from ycascade.orm import Model
    from ycascade.orm.relations import HasMany, HasOne, BelongsTo, BelongsToMany

    class Order(Model):
        __tablename__ = "orders"

        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")
        invoice = HasOne("Invoice", cascade_on_save=True, cascade_on_delete="nullify")
        customer = BelongsTo("Customer", target_table="customers")
        tags = BelongsToMany("Tag", target_table="tags", cascade_on_save=True)

    class OrderItem(Model):
        __tablename__ = "order_items"

        order = BelongsTo(Order)   # → order_id 列（外键 orders.id）

字段与基数:
    - HasOne:        ONE_TO_ONE，外键在关联表上
    - HasMany:       ONE_TO_MANY，外键在关联表上
    - BelongsTo:     MANY_TO_ONE，外键在本表上（不存在时自动创建）
    - BelongsToMany: MANY_TO_MANY，通过中间表关联（不存在时自动创建）
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Type, Union

from sqlalchemy import Table, Column, Integer, ForeignKey
from sqlalchemy.orm import relationship, backref as sa_backref, mapped_column

from ...exceptions import InvalidRelationConfigurationError
from ..utils import foreign_key_name, table_name_for
from .types import Cardinality, CASCADE_ON_SAVE, CASCADE_ON_DELETE

_UNSET = object()

# relationship().info 中记录关系基数的 key
CARDINALITY_INFO_KEY = "ycascade_cardinality"


# ==================== 字段配置类 ====================

class _RelationConfig:
    """关系字段配置基类

    Attributes:
        target: 目标模型类或类名
        options: 显式声明的级联选项（未声明的选项不出现）
        backref: 反向引用名称
        kwargs: 透传给 relationship() 的参数
    """

    cardinality: Cardinality

    def __init__(
        self,
        target: Union[Type, str],
        cascade_on_save: Any = _UNSET,
        cascade_on_delete: Any = _UNSET,
        options: Optional[Dict[str, Any]] = None,
        backref: Optional[str] = None,
        target_table: Optional[str] = None,
        **kwargs
    ):
        self.target = target
        self.options = dict(options or {})
        if cascade_on_save is not _UNSET:
            self.options[CASCADE_ON_SAVE] = cascade_on_save
        if cascade_on_delete is not _UNSET:
            self.options[CASCADE_ON_DELETE] = cascade_on_delete
        self.backref = backref
        self.target_table = target_table
        self.kwargs = kwargs

    @property
    def target_name(self) -> str:
        return self.target if isinstance(self.target, str) else self.target.__name__

    @property
    def resolved_target_table(self) -> str:
        return self.target_table or table_name_for(self.target)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} target={self.target_name} options={self.options}>"


class _HasOneConfig(_RelationConfig):
    cardinality = Cardinality.ONE_TO_ONE

    def __init__(self, target, foreign_key: Optional[str] = None, **kwargs):
        self.foreign_key = foreign_key
        super().__init__(target, **kwargs)


class _HasManyConfig(_RelationConfig):
    cardinality = Cardinality.ONE_TO_MANY

    def __init__(self, target, foreign_key: Optional[str] = None, **kwargs):
        self.foreign_key = foreign_key
        super().__init__(target, **kwargs)


class _BelongsToConfig(_RelationConfig):
    cardinality = Cardinality.MANY_TO_ONE

    def __init__(
        self,
        target,
        foreign_key: Optional[str] = None,
        owner_key: str = "id",
        nullable: bool = True,
        **kwargs
    ):
        self.foreign_key = foreign_key
        self.owner_key = owner_key
        self.nullable = nullable
        super().__init__(target, **kwargs)


class _BelongsToManyConfig(_RelationConfig):
    cardinality = Cardinality.MANY_TO_MANY

    def __init__(
        self,
        target,
        table: Optional[str] = None,
        foreign_key: Optional[str] = None,
        other_key: Optional[str] = None,
        **kwargs
    ):
        self.table = table
        self.foreign_key = foreign_key
        self.other_key = other_key
        super().__init__(target, **kwargs)


RELATION_CONFIG_TYPES = (_HasOneConfig, _HasManyConfig, _BelongsToConfig, _BelongsToManyConfig)


# ==================== 字段工厂函数 ====================

def HasOne(target, foreign_key: Optional[str] = None, **kwargs) -> Any:
    """一对一关系（外键在关联表上）

    Args:
        target: 目标模型类或类名
        foreign_key: 关联表上的外键属性名，默认 "<本表单数>_id"
        cascade_on_save: 是否参与级联保存
        cascade_on_delete: 解除关联策略（"nullify" / "delete" / True / False）
        backref: 反向引用名称
    """
    return _HasOneConfig(target, foreign_key=foreign_key, **kwargs)


def HasMany(target, foreign_key: Optional[str] = None, **kwargs) -> Any:
    """一对多关系（外键在关联表上）

    使用示例:
        class Order(Model):
            items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")

        order.items_ids = [2, 3, 4]
        order.save(commit=True)
    """
    return _HasManyConfig(target, foreign_key=foreign_key, **kwargs)


def BelongsTo(
    target,
    foreign_key: Optional[str] = None,
    owner_key: str = "id",
    nullable: bool = True,
    **kwargs
) -> Any:
    """多对一关系（外键在本表上）

    外键列不存在时自动创建：Integer + ForeignKey("<目标表>.<owner_key>")。

    Args:
        target: 目标模型类或类名（类名时可用 target_table 指定表名）
        foreign_key: 本表外键列名，默认 "<目标表单数>_id"
        owner_key: 目标表被引用的列
        nullable: 外键列是否可空
    """
    return _BelongsToConfig(
        target, foreign_key=foreign_key, owner_key=owner_key, nullable=nullable, **kwargs
    )


def BelongsToMany(
    target,
    table: Optional[str] = None,
    foreign_key: Optional[str] = None,
    other_key: Optional[str] = None,
    **kwargs
) -> Any:
    """多对多关系（中间表）

    中间表不存在时自动创建，两列联合主键，外键均 ondelete="CASCADE"。

    Args:
        target: 目标模型类或类名
        table: 中间表名，默认 "<本表>_<属性名>"
        foreign_key: 中间表指向本表的列，默认 "<本表单数>_id"
        other_key: 中间表指向目标表的列，默认 "<目标表单数>_id"
    """
    return _BelongsToManyConfig(
        target, table=table, foreign_key=foreign_key, other_key=other_key, **kwargs
    )


# ==================== 处理函数 ====================

def collect_relation_configs(cls) -> Dict[str, _RelationConfig]:
    """收集类自身及 Mixin / abstract 基类上尚未处理的关系字段（声明顺序）

    已有 __tablename__ 的具体模型基类跳过，其关系随 SQLAlchemy 继承。
    """
    configs: Dict[str, _RelationConfig] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        if klass is not cls and '__tablename__' in klass.__dict__:
            continue
        for attr_name, value in vars(klass).items():
            if isinstance(value, RELATION_CONFIG_TYPES):
                configs[attr_name] = value
    return configs


def process_relation_fields(cls, configs: Dict[str, _RelationConfig]) -> None:
    """将关系字段替换为 relationship()，并创建需要的外键列与中间表

    在 CoreModel.__init_subclass__ 中调用，此时类尚未映射。
    """
    from ..id_model import Base

    for attr_name, config in configs.items():
        _validate_target(cls, attr_name, config)
        if isinstance(config, _HasOneConfig):
            _process_has(cls, attr_name, config, uselist=False)
        elif isinstance(config, _HasManyConfig):
            _process_has(cls, attr_name, config, uselist=True)
        elif isinstance(config, _BelongsToConfig):
            _process_belongs_to(cls, attr_name, config)
        elif isinstance(config, _BelongsToManyConfig):
            _process_belongs_to_many(cls, attr_name, config, Base)


def _validate_target(cls, attr_name: str, config: _RelationConfig):
    target = config.target
    if isinstance(target, str):
        valid = bool(target.strip())
    else:
        valid = isinstance(target, type) and hasattr(target, "__tablename__")
    if not valid:
        raise InvalidRelationConfigurationError(
            f"关系目标必须是模型类或类名，实际为 {target!r}",
            model_name=cls.__name__,
            relation_name=attr_name,
        )


def _relationship_kwargs(config: _RelationConfig) -> dict:
    rel_kwargs = dict(config.kwargs)
    info = dict(rel_kwargs.pop('info', None) or {})
    info[CARDINALITY_INFO_KEY] = config.cardinality
    rel_kwargs['info'] = info
    if config.backref:
        rel_kwargs["backref"] = sa_backref(config.backref)
    return rel_kwargs


def _process_has(cls, attr_name: str, config, uselist: bool):
    fk_name = config.foreign_key or foreign_key_name(cls.__tablename__)

    rel_kwargs = _relationship_kwargs(config)
    rel_kwargs['foreign_keys'] = f"[{config.target_name}.{fk_name}]"
    rel_kwargs['uselist'] = uselist
    setattr(cls, attr_name, relationship(config.target, **rel_kwargs))


def _process_belongs_to(cls, attr_name: str, config: _BelongsToConfig):
    fk_name = config.foreign_key or foreign_key_name(config.resolved_target_table)

    if not any(fk_name in vars(klass) for klass in cls.__mro__):
        fk_column = mapped_column(
            Integer,
            ForeignKey(f"{config.resolved_target_table}.{config.owner_key}"),
            nullable=config.nullable,
            index=True,
        )
        setattr(cls, fk_name, fk_column)

    rel_kwargs = _relationship_kwargs(config)
    rel_kwargs['foreign_keys'] = f"[{cls.__name__}.{fk_name}]"
    setattr(cls, attr_name, relationship(config.target, **rel_kwargs))


def _process_belongs_to_many(cls, attr_name: str, config: _BelongsToManyConfig, Base):
    source_table = cls.__tablename__
    target_table = config.resolved_target_table
    table_name = config.table or f"{source_table}_{attr_name}"
    local_key = config.foreign_key or foreign_key_name(source_table)
    other_key = config.other_key or foreign_key_name(target_table)
    if local_key == other_key:
        raise InvalidRelationConfigurationError(
            f"中间表两端外键列名相同（{local_key}），请显式指定 foreign_key / other_key",
            model_name=cls.__name__,
            relation_name=attr_name,
        )

    if table_name in Base.metadata.tables:
        association_table = Base.metadata.tables[table_name]
    else:
        association_table = Table(
            table_name,
            Base.metadata,
            Column(local_key, Integer, ForeignKey(f"{source_table}.id", ondelete="CASCADE"), primary_key=True),
            Column(other_key, Integer, ForeignKey(f"{target_table}.id", ondelete="CASCADE"), primary_key=True),
        )

    rel_kwargs = _relationship_kwargs(config)
    rel_kwargs['secondary'] = association_table
    setattr(cls, attr_name, relationship(config.target, **rel_kwargs))


__all__ = [
    "HasOne",
    "HasMany",
    "BelongsTo",
    "BelongsToMany",
    "CARDINALITY_INFO_KEY",
    "RELATION_CONFIG_TYPES",
    "collect_relation_configs",
    "process_relation_fields",
]
