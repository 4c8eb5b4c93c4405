"""关系字段与注册表测试

测试覆盖：
- HasOne / HasMany / BelongsTo / BelongsToMany 生成的列、中间表与关系
- 注册表的关系名顺序、选项合并、绑定信息
- 手写 relationship() + __cascaded_relations__
- 类创建阶段的配置校验
"""

import pytest
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ycascade.config import CascadeSettings, configure_cascade
from ycascade.exceptions import InvalidRelationConfigurationError, UnknownRelationError
from ycascade.orm import Base, Model
from ycascade.orm.relations import (
    BelongsTo,
    BelongsToMany,
    Cardinality,
    DetachPolicy,
    HasMany,
    HasOne,
    IdsAttribute,
    registry_for,
)


# ==================== 测试模型定义 ====================
# extend_existing=True：避免 pytest 多文件加载时重复定义表的错误

class RgCustomer(Model):
    """客户"""
    __tablename__ = "rg_customers"
    __table_args__ = {'extend_existing': True}

    name: Mapped[str] = mapped_column(String(50), default="")


class RgOrder(Model):
    """订单：覆盖四种声明式关系"""
    __tablename__ = "rg_orders"
    __table_args__ = {'extend_existing': True}
    __relation_defaults__ = {"cascade_on_save": True}

    code: Mapped[str] = mapped_column(String(20), default="")

    items = HasMany("RgOrderItem", cascade_on_delete="delete", back_populates="order")
    invoice = HasOne("RgInvoice", cascade_on_delete="nullify")
    customer = BelongsTo(RgCustomer)
    tags = BelongsToMany("RgTag", target_table="rg_tags", cascade_on_delete="detach")


class RgOrderItem(Model):
    __tablename__ = "rg_order_items"
    __table_args__ = {'extend_existing': True}

    order = BelongsTo(RgOrder, back_populates="items")


class RgInvoice(Model):
    __tablename__ = "rg_invoices"
    __table_args__ = {'extend_existing': True}

    rg_order_id: Mapped[int] = mapped_column(Integer, ForeignKey("rg_orders.id"), nullable=True)


class RgTag(Model):
    __tablename__ = "rg_tags"
    __table_args__ = {'extend_existing': True}

    label: Mapped[str] = mapped_column(String(20), default="")


class RgNote(Model):
    """手写 relationship() + __cascaded_relations__"""
    __tablename__ = "rg_notes"
    __table_args__ = {'extend_existing': True}

    rg_customer_id: Mapped[int] = mapped_column(Integer, ForeignKey("rg_customers.id"), nullable=True)
    author = relationship(RgCustomer)

    __cascaded_relations__ = {
        "author": {"cascade_on_save": True},
    }


# ==================== 测试类 ====================

class TestRelationFields:
    """声明式关系字段测试"""

    def test_belongs_to_creates_foreign_key_column(self):
        """BelongsTo 自动创建 <目标表单数>_id 外键列"""
        column = RgOrder.__table__.c.rg_customer_id
        assert column.nullable
        assert [fk.target_fullname for fk in column.foreign_keys] == ["rg_customers.id"]

    def test_belongs_to_uses_existing_column(self):
        """外键列已存在时不重复创建"""
        assert "rg_order_id" in RgInvoice.__table__.c

    def test_belongs_to_many_creates_pivot_table(self):
        """BelongsToMany 自动创建中间表 <本表>_<属性名>"""
        pivot = Base.metadata.tables["rg_orders_tags"]
        assert set(pivot.c.keys()) == {"rg_order_id", "rg_tag_id"}
        assert {c.name for c in pivot.primary_key} == {"rg_order_id", "rg_tag_id"}

    def test_ids_attributes_installed(self):
        """每个关系都有 <关系名>_ids 输入属性"""
        for name in ("items", "invoice", "customer", "tags"):
            assert isinstance(getattr(RgOrder, f"{name}_ids"), IdsAttribute)
        assert isinstance(RgNote.author_ids, IdsAttribute)

    def test_relationship_direction(self):
        """生成的 relationship 方向正确"""
        registry = registry_for(RgOrder)
        assert registry.binding("items").cardinality is Cardinality.ONE_TO_MANY
        assert registry.binding("invoice").cardinality is Cardinality.ONE_TO_ONE
        assert registry.binding("customer").cardinality is Cardinality.MANY_TO_ONE
        assert registry.binding("tags").cardinality is Cardinality.MANY_TO_MANY


class TestRelationRegistry:
    """关系注册表测试"""

    def test_relation_names_in_declaration_order(self):
        assert registry_for(RgOrder).relation_names() == ("items", "invoice", "customer", "tags")

    def test_options_merge_type_defaults(self):
        """__relation_defaults__ 合并在单个关系选项之下"""
        options = registry_for(RgOrder).options("items")
        assert options["cascade_on_save"] is True
        assert options["cascade_on_delete"] is DetachPolicy.DELETE

    def test_binding_keys(self):
        registry = registry_for(RgOrder)

        items = registry.binding("items")
        assert items.target is RgOrderItem
        assert items.foreign_key == "rg_order_id"
        assert items.owner_key == "id"

        customer = registry.binding("customer")
        assert customer.target is RgCustomer
        assert customer.foreign_key == "rg_customer_id"

        tags = registry.binding("tags")
        assert tags.pivot_table.name == "rg_orders_tags"
        assert tags.pivot_foreign_key == "rg_order_id"
        assert tags.pivot_other_key == "rg_tag_id"

    def test_unknown_relation(self):
        registry = registry_for(RgOrder)

        with pytest.raises(UnknownRelationError) as exc_info:
            registry.options("missing")
        assert exc_info.value.relation_name == "missing"
        assert isinstance(exc_info.value, KeyError)

    def test_options_are_read_only(self):
        with pytest.raises(TypeError):
            registry_for(RgOrder).options("items")["cascade_on_save"] = False

    def test_registry_cached_per_type(self):
        assert registry_for(RgOrder) is registry_for(RgOrder())
        assert registry_for(RgOrder) is not registry_for(RgOrderItem)

    def test_mapper_provider(self):
        """手写 relationship 的基数与外键由 mapper 推导"""
        registry = registry_for(RgNote)
        binding = registry.binding("author")

        assert registry.relation_names() == ("author",)
        assert binding.cardinality is Cardinality.MANY_TO_ONE
        assert binding.foreign_key == "rg_customer_id"
        assert binding.target is RgCustomer

    def test_identifiers_coerced_to_target_key_type(self):
        """ID 按目标主键类型转换并去重"""
        binding = registry_for(RgOrder).binding("items")

        assert binding.coerce_identifiers(["1", " 2 ", 1, 3]) == [1, 2, 3]

    def test_unconvertible_identifier(self):
        binding = registry_for(RgOrder).binding("items")

        with pytest.raises(ValueError):
            binding.coerce_identifiers(["abc"])

    def test_model_without_relations(self):
        registry = registry_for(RgTag)
        assert len(registry) == 0
        assert registry.relation_names() == ()


class TestRelationValidation:
    """类创建阶段的配置校验测试"""

    def test_unknown_detach_policy(self):
        with pytest.raises(InvalidRelationConfigurationError) as exc_info:
            class RgBadPolicy(Model):
                __tablename__ = "rg_bad_policy"
                items = HasMany("RgOrderItem", cascade_on_save=True, cascade_on_delete="explode")

        assert "RgBadPolicy.items" in str(exc_info.value)

    def test_non_boolean_cascade_on_save(self):
        with pytest.raises(InvalidRelationConfigurationError):
            class RgBadSave(Model):
                __tablename__ = "rg_bad_save"
                items = HasMany("RgOrderItem", cascade_on_save="yes", cascade_on_delete="delete")

    def test_missing_explicit_detach_policy(self):
        """参与级联保存的一对多关系必须声明 cascade_on_delete"""
        with pytest.raises(InvalidRelationConfigurationError):
            class RgNoPolicy(Model):
                __tablename__ = "rg_no_policy"
                items = HasMany("RgOrderItem", cascade_on_save=True)

    def test_explicit_policy_requirement_can_be_disabled(self):
        configure_cascade(CascadeSettings(require_explicit_detach_policy=False))

        class RgLenientOrder(Model):
            __tablename__ = "rg_lenient_orders"
            __table_args__ = {'extend_existing': True}
            lines = HasMany("RgLenientLine", cascade_on_save=True)

        class RgLenientLine(Model):
            __tablename__ = "rg_lenient_lines"
            __table_args__ = {'extend_existing': True}
            order = BelongsTo(RgLenientOrder)

        assert "cascade_on_delete" not in registry_for(RgLenientOrder).options("lines")

    def test_detach_rejected_for_one_to_many(self):
        with pytest.raises(InvalidRelationConfigurationError) as exc_info:
            class RgBadDetach(Model):
                __tablename__ = "rg_bad_detach"
                items = HasMany("RgOrderItem", cascade_on_save=True, cascade_on_delete="detach")

        assert "detach" in str(exc_info.value)

    def test_invalid_target(self):
        with pytest.raises(InvalidRelationConfigurationError):
            class RgBadTarget(Model):
                __tablename__ = "rg_bad_target"
                items = HasMany(42, cascade_on_save=True, cascade_on_delete="delete")

    def test_invalid_cascaded_relations_value(self):
        with pytest.raises(InvalidRelationConfigurationError):
            class RgBadCascaded(Model):
                __tablename__ = "rg_bad_cascaded"
                __cascaded_relations__ = {"author": {"cascade_on_delete": 3}}
