# 〔このモジュールがすること〕
# レンジブレイク戦略の組み立てです。設定から レンジ追跡・エントリー判定・決済シグナル群・
# 数量アドバイザを作り、BarStrategy の配線（コントローラ/アービタ）に載せます。

from __future__ import annotations

from typing import Iterator, Optional

from strategies.base import BarStrategy
from strategies.breakout.config import BreakoutConfig
from strategies.breakout.enter import BreakoutEnterSignal
from strategies.breakout.exits import (
    BreakEven,
    BreakoutStopLoss,
    BreakoutTrailingStop,
    TakeProfitLevel,
    TimeExit,
)
from strategies.breakout.quantity import create_breakout_quantity_advisor
from strategies.consolidation import ConsolidationTracker
from te_core.engine.context import StrategyContext
from te_core.engine.controller import OrderVenue
from te_core.engine.enter import EnterSignal
from te_core.engine.exits import ExitSignal
from te_core.engine.metrics import Metrics
from te_core.engine.quantity import QuantityAdvisor
from te_core.utils.decision_log import DecisionLogger


class BreakoutStrategy(BarStrategy):
    """〔このクラスがすること〕 レンジブレイクのサンプル戦略 1 つ分です。"""

    def __init__(
        self,
        config: BreakoutConfig,
        *,
        venue: OrderVenue,
        context: Optional[StrategyContext] = None,
        initial_cash: float = 0.0,
        metrics: Optional[Metrics] = None,
        decisions: Optional[DecisionLogger] = None,
    ) -> None:
        self.config = config
        ctx = context or StrategyContext(
            initial_cash=initial_cash, primary_series=config.strategy.primary_series
        )
        self.tracker = ConsolidationTracker(
            ctx,
            series=config.strategy.consolidation_series,
            start=config.session.consolidation_start,
            end=config.session.consolidation_end,
            local_tz=config.strategy.local_tz,
        )
        self.stop_loss = BreakoutStopLoss(ctx, "Stop Loss", config.stop_loss.fixed_offset)
        super().__init__(
            config.strategy.name,
            venue=venue,
            context=ctx,
            warmup_bars=config.strategy.warmup_bars,
            metrics=metrics,
            decisions=decisions,
        )

    def create_enter_signal(self) -> EnterSignal:
        return BreakoutEnterSignal(self.context, self.config, self.tracker)

    def create_exit_signals(self) -> Iterator[ExitSignal]:
        cfg = self.config
        # 損切りは常に有効
        yield self.stop_loss
        if cfg.time_stop.enabled:
            yield TimeExit(self.context, "Time Exit", cfg.time_stop.max_position_time)
        for i, tier in enumerate(cfg.take_profit, start=1):
            if tier.enabled:
                yield TakeProfitLevel(self.context, f"Take Profit {i}", tier)
        if cfg.trailing.enabled:
            yield BreakoutTrailingStop(
                self.context,
                "Trailing Stop Loss",
                cfg.trailing.distance,
                cfg.trailing.activation_percentage,
            )
        if cfg.break_even.enabled:
            yield BreakEven(self.context, "Break Even", cfg.break_even, cfg.strategy.local_tz)

    def create_quantity_advisor(self) -> QuantityAdvisor:
        return create_breakout_quantity_advisor(self.context, self.config.quantity, self.stop_loss)
