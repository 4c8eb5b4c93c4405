"""
ORM核心模型

提供自动表名、时间戳、CRUD、批量操作，并在类创建时处理声明式关系字段
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import select, func, delete, update, inspect as sa_inspect
from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column, declared_attr, Session, Query, object_session

if TYPE_CHECKING:
    from typing_extensions import Self

from ..config import get_cascade_settings
from .id_model import IdModel
from .relations.fields import collect_relation_configs, process_relation_fields
from .relations.pending import IdsAttribute
from .relations.registry import (
    RelationSpec,
    cascaded_relation_options,
    merge_options,
    validate_options,
)
from .utils import to_snake_case, ids_attribute_name

# 实例 __dict__ 中存放临时属性的 key
TRANSIENT_ATTRIBUTE = "_transient_attributes"


class CoreModel(IdModel):
    """ORM核心模型类

    继承自 IdModel，提供功能：
    - 自动表名生成（驼峰转下划线）
    - 创建/更新时间戳
    - 常用CRUD与批量操作方法
    - 声明式关系字段（HasOne / HasMany / BelongsTo / BelongsToMany）
    - <关系名>_ids 输入属性
    - 临时属性：构造参数中不对应任何列的 key 暂存，保存前丢弃

    使用示例:
        from ycascade.orm import CoreModel, init_database
        from ycascade.orm.relations import HasMany

        init_database("sqlite:///./test.db")

        class Order(CoreModel):
            code: Mapped[str] = mapped_column(String(50))
            items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")

        order = Order(code="A001", remark="仅用于表单回显")
        order.remark                  # "仅用于表单回显"（临时属性，不会入库）
        order.save(commit=True)
    """
    __abstract__ = True

    # 允许非 Mapped[] 的类型注解
    __allow_unmapped__ = True

    # 注意：query 属性在 init_database 后通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]
    else:
        query = None

    # 类型级关系默认选项，合并在单个关系选项之下
    __relation_defaults__: ClassVar[Optional[Dict[str, Any]]] = None

    def __init_subclass__(cls, **kwargs):
        """子类初始化钩子

        处理关系字段、记录关系声明、校验级联选项、安装 <关系名>_ids 属性
        """
        super().__init_subclass__(**kwargs)

        # 注意：不能用 getattr(cls, '__abstract__')，它会继承父类的值
        if cls.__dict__.get('__abstract__', False):
            return

        # 先校验选项，避免为非法声明创建外键列或中间表
        configs = collect_relation_configs(cls)
        for name, config in configs.items():
            validate_options(
                cls.__name__, name, merge_options(cls, config.options), config.cardinality
            )
        if configs:
            process_relation_fields(cls, configs)

        declared = dict(getattr(cls, '__declared_relations__', None) or {})
        for name, config in configs.items():
            declared[name] = RelationSpec(name, config.cardinality, dict(config.options))
        cls.__declared_relations__ = declared

        # 手写 relationship() 的基数要等 mapper 配置后才知道，这里只校验取值类型
        cascaded = cascaded_relation_options(cls)
        for name, options in cascaded.items():
            validate_options(cls.__name__, name, merge_options(cls, options or {}))

        suffix = get_cascade_settings().ids_attribute_suffix
        for name in list(declared) + list(cascaded):
            attr_name = ids_attribute_name(name, suffix)
            existing = getattr(cls, attr_name, None)
            if existing is None or isinstance(existing, IdsAttribute):
                setattr(cls, attr_name, IdsAttribute(name))

    # 自动根据类名创建表名
    @declared_attr.directive
    def __tablename__(cls) -> str:
        return to_snake_case(cls.__name__)

    # 时间戳字段
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )

    # 系统字段列表（构造与 fill 时忽略）
    _system_fields: ClassVar[set] = {'id', 'created_at', 'updated_at'}

    def __init__(self, **kwargs):
        """初始化模型实例

        系统字段（id, created_at, updated_at）被静默忽略；
        不对应任何映射属性的 key 作为临时属性保存。
        """
        super().__init__()
        self.fill(**kwargs)

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    def __getattr__(self, name):
        # 仅在常规属性查找失败时调用
        transient = self.__dict__.get(TRANSIENT_ATTRIBUTE)
        if transient is not None and name in transient:
            return transient[name]
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    # ==================== 属性填充 ====================

    @classmethod
    def fillable_attribute(cls, name: str) -> bool:
        """name 是否可以直接赋值（映射属性、<关系名>_ids 或带 setter 的 property）"""
        if name in cls._system_fields or name.startswith('_'):
            return False
        if name in sa_inspect(cls).all_orm_descriptors.keys():
            return True
        descriptor = getattr(cls, name, None)
        if isinstance(descriptor, IdsAttribute):
            return True
        return isinstance(descriptor, property) and descriptor.fset is not None

    def fill(self, **data) -> Self:
        """批量赋值，无法映射的 key 进入临时属性

        Returns:
            self: 返回自身，支持链式调用
        """
        for key, value in data.items():
            if key in self._system_fields:
                continue
            if self.fillable_attribute(key):
                setattr(self, key, value)
            else:
                self.__dict__.setdefault(TRANSIENT_ATTRIBUTE, {})[key] = value
        return self

    @property
    def transient_attributes(self) -> Dict[str, Any]:
        return dict(self.__dict__.get(TRANSIENT_ATTRIBUTE) or {})

    def strip_transient_attributes(self) -> Dict[str, Any]:
        """丢弃临时属性，返回被丢弃的内容"""
        return self.__dict__.pop(TRANSIENT_ATTRIBUTE, None) or {}

    # ==================== Session ====================

    @property
    def session(self) -> Session:
        """获取当前session

        优先使用对象已绑定的 session，其次 query 属性，最后全局 scoped_session
        """
        session = object_session(self)
        if session is not None:
            return session
        return self.__class__.class_session()

    @classmethod
    def class_session(cls) -> Session:
        if cls.query is not None:
            return cls.query.session
        from .db_session import db_manager
        return db_manager.get_session()

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（自动判断新增或更新）

        Args:
            commit: 是否立即提交，默认False

        Returns:
            self: 返回自身，支持链式调用
        """
        self.strip_transient_attributes()
        self.session.add(self)
        self._commit(commit)
        return self

    def update(self, commit: bool = False, **kwargs) -> Self:
        """更新对象属性后保存

        使用示例:
            order.update(code="A002", commit=True)
        """
        self.fill(**kwargs)
        return self.save(commit)

    def delete(self, commit: bool = False):
        """删除对象"""
        self.session.delete(self)
        self._commit(commit)

    def refresh(self, attribute_names: list = None) -> Self:
        """从数据库重新加载对象状态"""
        if attribute_names:
            self.session.refresh(self, attribute_names)
        else:
            self.session.refresh(self)
        return self

    @classmethod
    def get(cls, id) -> Optional[Self]:
        """根据ID获取对象，不存在返回None"""
        return cls.class_session().get(cls, id)

    @classmethod
    def find_by_ids(cls, ids: list) -> List[Self]:
        """根据ID列表获取对象（按 id 排序）"""
        if not ids:
            return []
        stmt = select(cls).where(cls.id.in_(ids)).order_by(cls.id)
        return list(cls.class_session().scalars(stmt))

    # ==================== 批量操作方法 ====================

    @classmethod
    def bulk_update_by_ids(cls, ids: list, values: dict, commit: bool = False) -> int:
        """根据ID列表批量更新"""
        if not ids:
            return 0

        stmt = update(cls).where(cls.id.in_(ids)).values(**values)
        result = cls.class_session().execute(stmt)
        rowcount = result.rowcount
        cls._cls_commit(commit)
        return rowcount

    @classmethod
    def bulk_delete_by_ids(cls, ids: list, commit: bool = False) -> int:
        """根据ID列表批量删除"""
        if not ids:
            return 0

        stmt = delete(cls).where(cls.id.in_(ids))
        result = cls.class_session().execute(stmt)
        rowcount = result.rowcount
        cls._cls_commit(commit)
        return rowcount

    # ==================== 提交控制 ====================

    def _commit(self, commit: bool = False):
        """commit=True 时提交当前 session"""
        if commit:
            self.session.commit()

    @classmethod
    def _cls_commit(cls, commit: bool = False):
        if commit:
            cls.class_session().commit()


__all__ = ["CoreModel", "TRANSIENT_ATTRIBUTE"]
