"""业务模型基类

Model 组合了验证、操作人记录、级联关系与 CoreModel，保存流程：

    validate → strip_transient → hold_identifiers → 保存自身 → 对账关系 → 提交

使用示例:
    from typing import Annotated
    from sqlalchemy import String
    from sqlalchemy.orm import Mapped, mapped_column
    from ycascade.orm import Model
    from ycascade.orm.relations import HasMany, BelongsTo
    from ycascade.validators import StringLength

    class Order(Model):
        __tablename__ = "orders"
        __rules__ = {"code": Annotated[str, StringLength(min_length=1, max_length=20)]}

        code: Mapped[str] = mapped_column(String(20))
        items = HasMany("OrderItem", cascade_on_save=True, cascade_on_delete="delete")

    class OrderItem(Model):
        __tablename__ = "order_items"
        order = BelongsTo(Order)

    order = Order(code="A001", items_ids=[3, 4])
    order.save(commit=True)
"""

from .core_model import CoreModel
from .mixins import CascadedRelationsMixin, UserStampingMixin, ValidatingMixin


class Model(ValidatingMixin, UserStampingMixin, CascadedRelationsMixin, CoreModel):
    """业务模型基类（抽象）"""
    __abstract__ = True


__all__ = ["Model"]
