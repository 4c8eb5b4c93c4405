"""保存流水线

模型保存前依次执行的具名步骤，默认顺序：

    validate → strip_transient → hold_identifiers

之后由级联执行器保存实体并对账关系。步骤按名称插入或移除，没有优先级数字。

使用示例:
    class Order(Model):
        @classmethod
        def configure_save_pipeline(cls, pipeline):
            pipeline.insert_after("validate", "normalize_code", normalize_code)

    def normalize_code(context):
        context.entity.code = context.entity.code.upper()
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..log import get_logger

logger = get_logger("ycascade.orm.pipeline")

SaveStep = Callable[["SaveContext"], None]


@dataclass
class SaveContext:
    """一次保存的上下文

    Attributes:
        entity: 被保存的实体
        relation_names: 本次参与级联保存的关系名
        executor: 级联执行器
    """
    entity: Any
    relation_names: Tuple[str, ...] = ()
    executor: Optional[Any] = None


class SavePipeline:
    """有序的具名步骤列表"""

    def __init__(self, steps: Iterable[Tuple[str, SaveStep]] = ()):
        self._steps: List[Tuple[str, SaveStep]] = []
        for name, step in steps:
            self.append(name, step)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self._steps)

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self._steps)

    def _index(self, name: str) -> int:
        for index, (step_name, _) in enumerate(self._steps):
            if step_name == name:
                return index
        raise KeyError(f"保存流水线中没有步骤 '{name}'，现有步骤: {list(self.names)}")

    def _check_new(self, name: str):
        if name in self:
            raise ValueError(f"保存流水线中已存在步骤 '{name}'")

    def append(self, name: str, step: SaveStep) -> "SavePipeline":
        self._check_new(name)
        self._steps.append((name, step))
        return self

    def insert_before(self, anchor: str, name: str, step: SaveStep) -> "SavePipeline":
        self._check_new(name)
        self._steps.insert(self._index(anchor), (name, step))
        return self

    def insert_after(self, anchor: str, name: str, step: SaveStep) -> "SavePipeline":
        self._check_new(name)
        self._steps.insert(self._index(anchor) + 1, (name, step))
        return self

    def replace(self, name: str, step: SaveStep) -> "SavePipeline":
        self._steps[self._index(name)] = (name, step)
        return self

    def remove(self, name: str) -> "SavePipeline":
        del self._steps[self._index(name)]
        return self

    def copy(self) -> "SavePipeline":
        return SavePipeline(self._steps)

    def run(self, context: SaveContext) -> SaveContext:
        """依次执行所有步骤，任一步骤抛出异常即终止"""
        for name, step in self._steps:
            logger.debug(f"{type(context.entity).__name__} 保存步骤: {name}")
            step(context)
        return context

    def __repr__(self) -> str:
        return f"<SavePipeline {' → '.join(self.names)}>"


# ==================== 默认步骤 ====================

def validate_step(context: SaveContext) -> None:
    """执行实体的 validate()（实体未提供时跳过）"""
    validate = getattr(context.entity, "validate", None)
    if callable(validate):
        validate()


def strip_transient_step(context: SaveContext) -> None:
    """丢弃临时属性"""
    strip = getattr(context.entity, "strip_transient_attributes", None)
    if callable(strip):
        strip()


def hold_identifiers_step(context: SaveContext) -> None:
    """将待处理的关系 ID 移入暂存区"""
    if context.executor is not None and context.relation_names:
        context.executor.hold(context.entity, context.relation_names)


def default_save_pipeline() -> SavePipeline:
    return SavePipeline([
        ("validate", validate_step),
        ("strip_transient", strip_transient_step),
        ("hold_identifiers", hold_identifiers_step),
    ])


__all__ = [
    "SaveContext",
    "SavePipeline",
    "SaveStep",
    "validate_step",
    "strip_transient_step",
    "hold_identifiers_step",
    "default_save_pipeline",
]
