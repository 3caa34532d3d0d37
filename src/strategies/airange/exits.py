# 〔このモジュールがすること〕
# AI レンジ戦略の決済シグナルです。エントリーは「予測期間内の値動き」のヒントなので、
# 期間経過後は全量を閉じます。損切り/利確の水準は予測された到達幅から決めます。

from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterator, Optional

from te_core.engine.context import StrategyContext
from te_core.engine.exits import ExitSignal
from te_core.engine.models import AdviceType, CloseAdvice, Direction


class HorizonTimeExit(ExitSignal):
    """〔このクラスがすること〕 建玉から予測期間が経過したら全量を成行で閉じます。"""

    def __init__(self, context: StrategyContext, name: str, horizon: timedelta) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.horizon = horizon

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.context.current_time >= self.context.last_position_open_time + self.horizon:
            yield self.close_advice(self.initial_quantity)


class RangeStopLoss(ExitSignal):
    """〔このクラスがすること〕 平均建値から |Long 幅 − Short 幅| × 係数 だけ逆側に損切りを置きます。"""

    def __init__(self, context: StrategyContext, name: str, modifier: float) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.modifier = float(modifier)
        self.price: Optional[float] = None

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        distance = abs(signal.long_range - signal.short_range) * self.modifier
        self.price = None if self.direction is Direction.FLAT else (
            self.average_price - distance * self.direction.sign
        )

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.price is not None:
            yield self.close_advice(self.initial_quantity, self.price)

    def cleanup(self) -> None:
        super().cleanup()
        self.price = None


class RangeTakeProfit(ExitSignal):
    """〔このクラスがすること〕 予測された到達幅 × 係数 の位置で全量を利確します。"""

    def __init__(self, context: StrategyContext, name: str, modifier: float) -> None:
        super().__init__(context, name, AdviceType.TAKE_PROFIT)
        self.modifier = float(modifier)
        self.price: Optional[float] = None

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        if self.direction is Direction.LONG:
            self.price = self.average_price + signal.long_range * self.modifier
        elif self.direction is Direction.SHORT:
            self.price = self.average_price - signal.short_range * self.modifier
        else:
            self.price = None

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.price is not None:
            yield self.close_advice(self.initial_quantity, self.price)

    def cleanup(self) -> None:
        super().cleanup()
        self.price = None
