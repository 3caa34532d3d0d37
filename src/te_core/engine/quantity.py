# 〔このモジュールがすること〕
# 建玉要求（OpenRequest）から発注数量を決める「数量アドバイザ」を提供します。
# - FixedQuantityAdvisor: 固定数量
# - FixedRiskQuantityAdvisor: 1 トレードの許容損失額 ÷ 想定損失幅
# - PercentageRiskQuantityAdvisor: (初期資金 + 確定損益) × 割合 ÷ 想定損失幅

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from te_core.engine.context import StrategyContext
from te_core.engine.models import OpenRequest
from te_core.utils.config import ConfigError
from te_core.utils.logger import get_logger

logger = get_logger("te_core.quantity")

LossDistance = Callable[[OpenRequest], float]


class TradeRiskType(str, Enum):
    FIXED_SIZE = "fixed_size"
    FIXED_LOSS = "fixed_loss"
    PERCENTAGE_LOSS = "percentage_loss"


class QuantityAdvisor(ABC):
    """〔このクラスがすること〕 建玉要求ごとに発注数量（整数）を返す純粋関数の器です。"""

    @abstractmethod
    def get_quantity(self, open_request: OpenRequest) -> int:
        ...


class FixedQuantityAdvisor(QuantityAdvisor):
    def __init__(self, quantity: int) -> None:
        self.quantity = int(quantity)

    def get_quantity(self, open_request: OpenRequest) -> int:
        return self.quantity


class RiskBasedQuantityAdvisor(QuantityAdvisor):
    """〔このクラスがすること〕
    許容損失額（money_to_risk）と想定損失幅から数量を算出します。最低 1 を返します。
    """

    def __init__(self, loss_distance: LossDistance) -> None:
        self._loss_distance = loss_distance

    @property
    @abstractmethod
    def money_to_risk(self) -> float:
        ...

    def get_quantity(self, open_request: OpenRequest) -> int:
        """〔このメソッドがすること〕 max(1, int(money_to_risk / 損失幅)) を返します。"""
        distance = float(self._loss_distance(open_request))
        if math.isnan(distance) or distance <= 0.0:
            logger.warning(
                "non-positive loss distance %s for %s; using minimum quantity",
                distance,
                open_request.context,
            )
            return 1
        return max(1, int(self.money_to_risk / distance))


class FixedRiskQuantityAdvisor(RiskBasedQuantityAdvisor):
    def __init__(self, money_to_risk: float, loss_distance: LossDistance) -> None:
        super().__init__(loss_distance)
        self._money_to_risk = float(money_to_risk)

    @property
    def money_to_risk(self) -> float:
        return self._money_to_risk


class PercentageRiskQuantityAdvisor(RiskBasedQuantityAdvisor):
    """〔このクラスがすること〕 口座評価額（初期資金 + 確定損益）の一定割合をリスク額にします。"""

    def __init__(
        self, context: StrategyContext, fraction: float, loss_distance: LossDistance
    ) -> None:
        super().__init__(loss_distance)
        self._context = context
        self.fraction = float(fraction)

    @property
    def money_to_risk(self) -> float:
        return self._context.account.equity * self.fraction


def build_quantity_advisor(
    risk_type: TradeRiskType | str,
    *,
    fixed_size: int,
    fixed_loss: float,
    percentage_loss: float,
    context: StrategyContext,
    loss_distance: Optional[LossDistance] = None,
) -> QuantityAdvisor:
    """〔この関数がすること〕
    設定のリスク種別から数量アドバイザを組み立てます。percentage_loss は % 表記（5 → 5%）です。
    """
    kind = TradeRiskType(risk_type)
    if kind is TradeRiskType.FIXED_SIZE:
        return FixedQuantityAdvisor(fixed_size)
    if loss_distance is None:
        raise ConfigError(f"risk type {kind.value} requires a loss distance function")
    if kind is TradeRiskType.FIXED_LOSS:
        return FixedRiskQuantityAdvisor(fixed_loss, loss_distance)
    return PercentageRiskQuantityAdvisor(context, percentage_loss / 100.0, loss_distance)
