# 〔このモジュールがすること〕
# レンジブレイク戦略の決済シグナル群です（アービタに登録順で渡されます）。
# - BreakoutStopLoss  : レンジ反対側 ± 固定オフセットの損切り（常に有効）
# - TimeExit          : 建玉から一定時間経過で全量成行
# - TakeProfitLevel   : 平均建値からレンジ幅の % 先で、建玉の % を利確（3 段まで）
# - BreakoutTrailingStop : レンジ幅の % だけ含み益が出たら追従開始
# - BreakEven         : 指定時刻以降に含み益が閾値以上なら建値 ± オフセットへ損切りを移動

from __future__ import annotations

from datetime import timedelta
from typing import Any, Iterator, Optional

from strategies.breakout.config import BreakEvenCfg, TakeProfitTier
from strategies.consolidation import ConsolidationRange
from te_core.engine.context import BarSeries, StrategyContext
from te_core.engine.exits import ExitSignal, TrailingStopLoss
from te_core.engine.models import AdviceType, Bar, CloseAdvice, Direction


class BreakoutStopLoss(ExitSignal):
    """〔このクラスがすること〕 建玉時に 1 度だけ損切り価格を決める固定ストップです。"""

    def __init__(self, context: StrategyContext, name: str, fixed_offset: float) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.fixed_offset = float(fixed_offset)
        self.price: Optional[float] = None

    def stop_level(self, direction: Direction, rng: ConsolidationRange) -> Optional[float]:
        """〔このメソッドがすること〕 Long はレンジ下限 − オフセット、Short は上限 + オフセットです。"""
        if direction is Direction.LONG:
            return rng.range_low - self.fixed_offset
        if direction is Direction.SHORT:
            return rng.range_high + self.fixed_offset
        return None

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.price is not None:
            yield self.close_advice(self.initial_quantity, self.price)

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        self.price = self.stop_level(signal.direction, signal_context.consolidation)

    def cleanup(self) -> None:
        super().cleanup()
        self.price = None


class TimeExit(ExitSignal):
    """〔このクラスがすること〕 建玉から max_position_time 経過したら全量を成行で閉じます。"""

    def __init__(self, context: StrategyContext, name: str, max_position_time: timedelta) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.max_position_time = max_position_time

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.context.current_time >= self.context.last_position_open_time + self.max_position_time:
            yield self.close_advice(self.initial_quantity)


class TakeProfitLevel(ExitSignal):
    """〔このクラスがすること〕 段階利確 1 段です。数量は初期建玉の %（切り捨て）です。"""

    def __init__(self, context: StrategyContext, name: str, tier: TakeProfitTier) -> None:
        super().__init__(context, name, AdviceType.TAKE_PROFIT)
        self.tier = tier
        self.price: Optional[float] = None
        self.size = 0

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.price is not None:
            yield self.close_advice(self.size, self.price)

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        self.price = None
        self.size = 0

        pct = max(0, min(100, self.tier.position_percentage))
        size = int(pct / 100.0 * self.initial_quantity)
        distance_pct = max(0, self.tier.distance)
        if size == 0 or distance_pct == 0:
            return

        distance = signal_context.consolidation.size_high_low * (distance_pct / 100.0)
        if signal.direction is Direction.LONG:
            self.price = self.average_price + distance
        elif signal.direction is Direction.SHORT:
            self.price = self.average_price - distance
        self.size = size

    def cleanup(self) -> None:
        super().cleanup()
        self.price = None
        self.size = 0


class BreakoutTrailingStop(TrailingStopLoss):
    """〔このクラスがすること〕 含み益がレンジ幅 × activation% に達した足から追従を始めます。"""

    def __init__(
        self, context: StrategyContext, name: str, distance: float, activation_percentage: float
    ) -> None:
        super().__init__(context, name)
        self.distance = float(distance)
        self.activation_percentage = float(activation_percentage)
        self.activation_distance = 0.0

    @property
    def bars(self) -> BarSeries:
        return self.context.primary_bars

    @property
    def stop_distance(self) -> float:
        return self.distance

    def activate(self, bar: Bar) -> bool:
        if self.direction is Direction.LONG:
            return bar.high >= self.average_price + self.activation_distance
        if self.direction is Direction.SHORT:
            return bar.low <= self.average_price - self.activation_distance
        return False

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        pct = max(0.0, min(100.0, self.activation_percentage))
        self.activation_distance = signal_context.consolidation.size_high_low * (pct / 100.0)


class BreakEven(ExitSignal):
    """〔このクラスがすること〕
    activation_time 以降の足で含み益が activation_profit 以上になったら、
    建値 ± offset に損切りを置き、以後はその水準を出し続けます。
    """

    def __init__(
        self, context: StrategyContext, name: str, config: BreakEvenCfg, local_tz: str = "UTC"
    ) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.config = config
        self.local_tz = local_tz
        self.level: Optional[float] = None

    def close_advices(self) -> Iterator[CloseAdvice]:
        if self.level is not None:
            yield self.close_advice(self.initial_quantity, self.level)
            return

        now = self.context.current_time
        if now < self.config.activation_time.on(now.date(), self.local_tz):
            return

        last = self.context.primary_bars.last
        if last is None:
            return
        profit = (last.close - self.average_price) * self.direction.sign
        if self.direction is Direction.FLAT or profit < self.config.activation_profit:
            return

        self.level = self.average_price + self.config.offset * self.direction.sign
        yield self.close_advice(self.initial_quantity, self.level)

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        self.level = None

    def cleanup(self) -> None:
        super().cleanup()
        self.level = None
