"""CoreModel 集成测试

测试覆盖：
- 自动表名与时间戳
- fill / 临时属性
- CRUD 与批量操作
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ycascade.orm import CoreModel


# ==================== 测试模型定义 ====================

class CmWidget(CoreModel):
    """未指定 __tablename__，按类名生成"""
    __table_args__ = {'extend_existing': True}

    name: Mapped[str] = mapped_column(String(50), default="")
    size: Mapped[int] = mapped_column(Integer, default=0)

    @property
    def label(self):
        return f"{self.name}#{self.size}"

    @label.setter
    def label(self, value):
        self.name, size = value.split("#")
        self.size = int(size)


# ==================== 测试类 ====================

class TestTableName:
    def test_snake_case_table_name(self):
        assert CmWidget.__tablename__ == "cm_widget"


class TestFill:
    """属性填充测试"""

    def test_system_fields_ignored(self):
        widget = CmWidget(id=99, name="齿轮")

        assert widget.id is None
        assert widget.name == "齿轮"

    def test_property_setter_is_fillable(self):
        widget = CmWidget(label="螺丝#3")

        assert widget.name == "螺丝"
        assert widget.size == 3
        assert widget.transient_attributes == {}

    def test_unknown_keys_become_transient(self):
        widget = CmWidget(name="齿轮", color="红")

        assert widget.color == "红"
        assert widget.transient_attributes == {"color": "红"}

    def test_strip_transient_attributes(self):
        widget = CmWidget(color="红")

        assert widget.strip_transient_attributes() == {"color": "红"}
        assert widget.transient_attributes == {}

    def test_fill_chains(self):
        widget = CmWidget().fill(name="齿轮").fill(size=2)

        assert (widget.name, widget.size) == ("齿轮", 2)


class TestCrud:
    """CRUD 测试"""

    def test_save_sets_timestamps(self, db_session):
        widget = CmWidget(name="齿轮").save(commit=True)

        assert widget.id is not None
        assert widget.created_at is not None
        assert widget.updated_at is None

    def test_update(self, db_session):
        widget = CmWidget(name="齿轮").save(commit=True)

        widget.update(name="链条", commit=True)

        assert CmWidget.get(widget.id).name == "链条"
        assert widget.updated_at is not None

    def test_delete(self, db_session):
        widget = CmWidget(name="齿轮").save(commit=True)
        widget_id = widget.id

        widget.delete(commit=True)

        assert CmWidget.get(widget_id) is None

    def test_get_missing(self, db_session):
        assert CmWidget.get(12345) is None

    def test_find_by_ids_ordered(self, db_session):
        ids = [CmWidget(name=str(i)).save(commit=True).id for i in range(3)]

        found = CmWidget.find_by_ids(list(reversed(ids)))

        assert [w.id for w in found] == ids
        assert CmWidget.find_by_ids([]) == []


class TestBulkOperations:
    """批量操作测试"""

    def test_bulk_update_by_ids(self, db_session):
        ids = [CmWidget(name="旧", size=1).save(commit=True).id for _ in range(3)]

        count = CmWidget.bulk_update_by_ids(ids[:2], {"size": 5}, commit=True)
        db_session.expire_all()

        assert count == 2
        assert [w.size for w in CmWidget.find_by_ids(ids)] == [5, 5, 1]

    def test_bulk_delete_by_ids(self, db_session):
        ids = [CmWidget(name="旧").save(commit=True).id for _ in range(3)]

        count = CmWidget.bulk_delete_by_ids(ids[1:], commit=True)

        assert count == 2
        assert [w.id for w in CmWidget.find_by_ids(ids)] == ids[:1]

    def test_empty_ids(self, db_session):
        assert CmWidget.bulk_update_by_ids([], {"size": 1}) == 0
        assert CmWidget.bulk_delete_by_ids([]) == 0
