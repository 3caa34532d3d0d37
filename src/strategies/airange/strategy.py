# 〔このモジュールがすること〕
# AI レンジ戦略の組み立てです。構築時に選んだモード（learn / player）でエントリー判定を切り替えます。
# - learn : 建玉せず、入力ベクトルとラベルを TrainingDataLogger で CSV に書き出す
# - player: 判定表（CSV）を再生して建玉し、時間決済・損切り（任意で利確）で閉じる

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Optional

from strategies.airange.config import AIRangeConfig
from strategies.airange.enter import RangeLearnSignal, RangePlayerSignal
from strategies.airange.exits import HorizonTimeExit, RangeStopLoss, RangeTakeProfit
from strategies.airange.extractor import RangeInputExtractor
from strategies.airange.vectors import EMPTY_INPUT, EMPTY_OUTPUT
from strategies.base import BarStrategy
from strategies.consolidation import ConsolidationTracker
from te_core.engine.context import StrategyContext
from te_core.engine.controller import OrderVenue
from te_core.engine.enter import AIEnterSignal, EnterMode
from te_core.engine.exits import ExitSignal
from te_core.engine.metrics import Metrics
from te_core.engine.quantity import FixedQuantityAdvisor, QuantityAdvisor
from te_core.engine.training_log import TrainingDataLogger
from te_core.utils.decision_log import DecisionLogger


class AIRangeStrategy(BarStrategy):
    """〔このクラスがすること〕 AI 支援エントリーのサンプル戦略 1 つ分です。"""

    def __init__(
        self,
        config: AIRangeConfig,
        *,
        venue: OrderVenue,
        context: Optional[StrategyContext] = None,
        initial_cash: float = 0.0,
        training_dir: str | Path = "training",
        training_logger: Optional[TrainingDataLogger] = None,
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
            start=config.consolidation.start,
            end=config.consolidation.end,
            local_tz=config.strategy.local_tz,
            valid_for=config.consolidation.valid_for,
        )
        self.extractor = RangeInputExtractor(ctx, config, self.tracker)
        self.training_logger = training_logger
        if self.training_logger is None and config.strategy.mode is EnterMode.LEARN:
            self.training_logger = TrainingDataLogger(
                config.learn.output_dir or training_dir,
                on_written=metrics.on_training_record if metrics is not None else None,
            )
        super().__init__(
            config.strategy.name,
            venue=venue,
            context=ctx,
            warmup_bars=config.strategy.warmup_bars,
            metrics=metrics,
            decisions=decisions,
        )

    @property
    def mode(self) -> EnterMode:
        return self.config.strategy.mode

    def create_enter_signal(self) -> AIEnterSignal:
        if self.mode is EnterMode.LEARN:
            if self.training_logger is None:
                raise RuntimeError("learn mode needs a training logger")
            return RangeLearnSignal(
                self.context,
                self.extractor,
                horizon=self.config.learn.data_period,
                training_logger=self.training_logger,
                empty_context=EMPTY_INPUT,
                empty_signal=EMPTY_OUTPUT,
            )
        return RangePlayerSignal(
            self.context,
            self.extractor,
            table_path=self.config.player.table_path,
            empty_context=EMPTY_INPUT,
            empty_signal=EMPTY_OUTPUT,
            regression=self.config.player.regression,
            range_difference_to_open=self.config.player.range_difference_to_open,
        )

    def create_exit_signals(self) -> Iterator[ExitSignal]:
        yield HorizonTimeExit(self.context, "Time Exit", self.config.learn.data_period)
        yield RangeStopLoss(self.context, "Stop Loss", self.config.exit.stop_loss_modifier)
        if self.config.exit.take_profit_enabled:
            yield RangeTakeProfit(self.context, "Take Profit", self.config.exit.take_profit_modifier)

    def create_quantity_advisor(self) -> QuantityAdvisor:
        return FixedQuantityAdvisor(self.config.quantity.fixed_size)
