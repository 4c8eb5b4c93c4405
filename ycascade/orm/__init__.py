"""ORM模块

- Model: 业务模型基类（验证 + 操作人 + 级联关系）
- CoreModel: 核心模型基类（表名、时间戳、CRUD、关系字段）
- relations: 声明式关系字段、关系注册表、级联规划与执行
- 数据库会话管理
- 保存流水线

使用示例:
    from ycascade.orm import Model, init_database, get_db
    from ycascade.orm.relations import HasMany, BelongsToMany

    init_database("sqlite:///./app.db")

    class Order(Model):
        __tablename__ = "orders"
        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")
        tags = BelongsToMany("Tag", target_table="tags", cascade_on_save=True)

    # 在路由中使用
    @app.post("/orders/{order_id}/items")
    def set_items(order_id: int, ids: list[int], db: Session = Depends(get_db)):
        order = Order.get(order_id)
        order.items_ids = ids
        order.save()
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .model import Model
from .db_session import (
    DatabaseManager,
    db_manager,
    init_database,
    get_engine,
    get_db,
    db_session_scope,
    enable_sqlite_savepoints,
)
from .current_user import set_user, get_user_id, clear_user, resolve_current_user_id
from .pipeline import (
    SaveContext,
    SavePipeline,
    validate_step,
    strip_transient_step,
    hold_identifiers_step,
    default_save_pipeline,
)
from .mixins import (
    CascadedRelationsMixin,
    ValidatingMixin,
    ValidationErrors,
    rule,
    UserStampingMixin,
    UserStampColumnsMixin,
    SoftDeleteMixin,
)
from . import relations
from .relations import (
    HasOne,
    HasMany,
    BelongsTo,
    BelongsToMany,
    ANY,
    registry_for,
    select_relations,
)
from .utils import to_snake_case, singularize, foreign_key_name, ids_attribute_name

__all__ = [
    # 模型
    "Base",
    "IdModel",
    "CoreModel",
    "Model",
    # 会话
    "DatabaseManager",
    "db_manager",
    "init_database",
    "get_engine",
    "get_db",
    "db_session_scope",
    "enable_sqlite_savepoints",
    # 当前用户
    "set_user",
    "get_user_id",
    "clear_user",
    "resolve_current_user_id",
    # 保存流水线
    "SaveContext",
    "SavePipeline",
    "validate_step",
    "strip_transient_step",
    "hold_identifiers_step",
    "default_save_pipeline",
    # Mixin
    "CascadedRelationsMixin",
    "ValidatingMixin",
    "ValidationErrors",
    "rule",
    "UserStampingMixin",
    "UserStampColumnsMixin",
    "SoftDeleteMixin",
    # 关系
    "relations",
    "HasOne",
    "HasMany",
    "BelongsTo",
    "BelongsToMany",
    "ANY",
    "registry_for",
    "select_relations",
    # 工具
    "to_snake_case",
    "singularize",
    "foreign_key_name",
    "ids_attribute_name",
]
