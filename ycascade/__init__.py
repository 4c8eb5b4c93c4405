"""ycascade - SQLAlchemy 模型的声明式关系与级联持久化

快速开始:
    from ycascade.orm import Model, init_database
    from ycascade.orm.relations import HasMany, BelongsTo

    init_database("sqlite:///./app.db")

    class Order(Model):
        __tablename__ = "orders"
        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")

    class OrderItem(Model):
        __tablename__ = "order_items"
        order = BelongsTo(Order)

    order = Order()
    order.items_ids = [1, 2]
    order.save(commit=True)
"""

__version__ = "0.1.0"

from .exceptions import (
    ErrorCode,
    BusinessException,
    ORMException,
    UnknownRelationError,
    InvalidRelationConfigurationError,
    CascadeFailureError,
    ModelValidationError,
    register_exception_handlers,
)
from .log import get_logger, setup_logger, setup_root_logger
from .config import AppSettings, CascadeSettings, configure_cascade, get_cascade_settings

__all__ = [
    "__version__",
    "ErrorCode",
    "BusinessException",
    "ORMException",
    "UnknownRelationError",
    "InvalidRelationConfigurationError",
    "CascadeFailureError",
    "ModelValidationError",
    "register_exception_handlers",
    "get_logger",
    "setup_logger",
    "setup_root_logger",
    "AppSettings",
    "CascadeSettings",
    "configure_cascade",
    "get_cascade_settings",
]
