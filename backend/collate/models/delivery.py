"""
交付状态模型 - 上传状态机的状态记录

状态流转：
RESERVING → TRANSFERRING → FINALIZING → VERIFYING → DONE
                                                  ↘ FALLBACK_TRANSFERRING → FALLBACK_DONE
任一阶段失败 → FAILED
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class DeliveryStage(str, Enum):
    """交付阶段"""
    RESERVING = "reserving"
    TRANSFERRING = "transferring"
    FINALIZING = "finalizing"
    VERIFYING = "verifying"
    DONE = "done"
    FALLBACK_TRANSFERRING = "fallback_transferring"
    FALLBACK_DONE = "fallback_done"
    FAILED = "failed"


TERMINAL_STAGES = {DeliveryStage.DONE, DeliveryStage.FALLBACK_DONE, DeliveryStage.FAILED}

_ALLOWED_TRANSITIONS: dict[DeliveryStage, set[DeliveryStage]] = {
    DeliveryStage.RESERVING: {DeliveryStage.TRANSFERRING, DeliveryStage.FAILED},
    DeliveryStage.TRANSFERRING: {DeliveryStage.FINALIZING, DeliveryStage.FAILED},
    DeliveryStage.FINALIZING: {DeliveryStage.VERIFYING, DeliveryStage.FAILED},
    DeliveryStage.VERIFYING: {DeliveryStage.DONE, DeliveryStage.FALLBACK_TRANSFERRING},
    DeliveryStage.FALLBACK_TRANSFERRING: {DeliveryStage.FALLBACK_DONE, DeliveryStage.FAILED},
    DeliveryStage.DONE: set(),
    DeliveryStage.FALLBACK_DONE: set(),
    DeliveryStage.FAILED: set(),
}


def can_transition(current: DeliveryStage, target: DeliveryStage) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, set())


class DeliveryState(BaseModel):
    """交付状态（单次导出内有效，不持久化）"""
    request_id: str
    stage: DeliveryStage = DeliveryStage.RESERVING
    reserved_length: int = 0
    bytes_transferred: int = 0
    verified: bool = False

    file_id: str | None = None
    failed_stage: DeliveryStage | None = None
    error: str | None = None
    history: list[DeliveryStage] = Field(default_factory=lambda: [DeliveryStage.RESERVING])

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def succeeded(self) -> bool:
        return self.stage in (DeliveryStage.DONE, DeliveryStage.FALLBACK_DONE)

    def advance(self, target: DeliveryStage) -> None:
        """状态迁移（非法迁移抛 ValueError）"""
        if not can_transition(self.stage, target):
            raise ValueError(f"invalid delivery transition: {self.stage.value} -> {target.value}")
        self.stage = target
        self.history.append(target)

    def fail(self, error: str) -> None:
        """标记失败，记录失败阶段"""
        self.failed_stage = self.stage
        self.error = error
        self.advance(DeliveryStage.FAILED)
