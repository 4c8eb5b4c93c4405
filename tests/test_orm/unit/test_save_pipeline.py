"""保存流水线测试"""

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ycascade.orm import (
    Model,
    SaveContext,
    SavePipeline,
    default_save_pipeline,
)


def _noop(context):
    pass


# ==================== 测试模型定义 ====================

def _normalize_code(context):
    context.entity.code = context.entity.code.strip().upper()


class SpOrder(Model):
    """在 validate 之前插入规范化步骤"""
    __tablename__ = "sp_orders"
    __table_args__ = {'extend_existing': True}

    code: Mapped[str] = mapped_column(String(20), default="")

    @classmethod
    def configure_save_pipeline(cls, pipeline):
        pipeline.insert_before("validate", "normalize_code", _normalize_code)


class SpPlain(Model):
    __tablename__ = "sp_plains"
    __table_args__ = {'extend_existing': True}


# ==================== 测试类 ====================

class TestSavePipeline:
    """步骤增删测试"""

    def test_default_order(self):
        assert default_save_pipeline().names == ("validate", "strip_transient", "hold_identifiers")

    def test_insert_relative_to_anchor(self):
        pipeline = default_save_pipeline()
        pipeline.insert_after("validate", "audit", _noop)
        pipeline.insert_before("validate", "prepare", _noop)

        assert pipeline.names == ("prepare", "validate", "audit", "strip_transient", "hold_identifiers")

    def test_replace_and_remove(self):
        pipeline = default_save_pipeline()
        pipeline.replace("validate", _noop)
        pipeline.remove("strip_transient")

        assert pipeline.names == ("validate", "hold_identifiers")

    def test_unknown_anchor(self):
        with pytest.raises(KeyError):
            default_save_pipeline().insert_after("missing", "audit", _noop)

    def test_duplicate_name(self):
        with pytest.raises(ValueError):
            default_save_pipeline().append("validate", _noop)

    def test_copy_is_independent(self):
        pipeline = default_save_pipeline()
        copied = pipeline.copy()
        copied.remove("validate")

        assert "validate" in pipeline
        assert "validate" not in copied

    def test_run_in_order_and_stop_on_error(self):
        calls = []

        def _failing(context):
            calls.append("fail")
            raise RuntimeError("中断")

        pipeline = SavePipeline([
            ("first", lambda context: calls.append("first")),
            ("fail", _failing),
            ("last", lambda context: calls.append("last")),
        ])

        with pytest.raises(RuntimeError):
            pipeline.run(SaveContext(entity=object()))

        assert calls == ["first", "fail"]


class TestModelPipeline:
    """模型保存流水线测试"""

    def test_configured_per_model(self):
        assert SpOrder.save_pipeline().names[0] == "normalize_code"
        assert "normalize_code" not in SpPlain.save_pipeline()

    def test_pipeline_cached(self):
        assert SpOrder.save_pipeline() is SpOrder.save_pipeline()

    def test_custom_step_runs_on_save(self, db_session):
        order = SpOrder(code="  a001 ").save(commit=True)

        assert order.code == "A001"

    def test_transient_attributes_dropped_on_save(self, db_session):
        order = SpOrder(code="a002", remark="仅用于回显")
        assert order.remark == "仅用于回显"

        order.save(commit=True)

        assert order.transient_attributes == {}
        with pytest.raises(AttributeError):
            order.remark
