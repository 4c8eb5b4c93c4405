"""软删除 Mixin

soft_delete() 写入 deleted_at 而不删除行，restore() 清空 deleted_at。
与 UserStampingMixin 一起使用时，deleted_by_id 随之填充或清空。

使用示例:
    class Customer(SoftDeleteMixin, Model):
        name: Mapped[str] = mapped_column(String(50))

    customer.soft_delete(commit=True)
    customer.is_deleted          # True
    customer.restore(commit=True)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


class SoftDeleteMixin:
    """软删除（需与 CoreModel 一起使用）"""

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        default=None,
        comment="删除时间（软删除标记）"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, commit: bool = False, deleted_at: Optional[datetime] = None):
        """软删除当前对象"""
        self.deleted_at = deleted_at or datetime.now()
        self.session.add(self)
        self.session.flush()
        self._commit(commit)
        return self

    def restore(self, commit: bool = False):
        """恢复软删除的对象"""
        self.deleted_at = None
        self.session.add(self)
        self.session.flush()
        self._commit(commit)
        return self


__all__ = ["SoftDeleteMixin"]
