"""模型 Mixin

- CascadedRelationsMixin: 级联保存/删除
- ValidatingMixin: 保存前验证
- UserStampingMixin / UserStampColumnsMixin: 操作人字段
- SoftDeleteMixin: 软删除
"""

from .cascaded_relations import CascadedRelationsMixin
from .validating import ValidatingMixin, ValidationErrors, rule
from .user_stamping import UserStampingMixin, UserStampColumnsMixin
from .soft_delete import SoftDeleteMixin

__all__ = [
    "CascadedRelationsMixin",
    "ValidatingMixin",
    "ValidationErrors",
    "rule",
    "UserStampingMixin",
    "UserStampColumnsMixin",
    "SoftDeleteMixin",
]
