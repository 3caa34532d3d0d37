# 〔このモジュールがすること〕
# 足確定ごとに RangeInputVector を組み立てる抽出器です。
# データが揃っていない（レンジ未確定・足不足・ボラティリティ未計算または 0）ときは EMPTY を返し、
# エントリー判定はニュートラルになります。

from __future__ import annotations

import math

from strategies.airange.config import AIRangeConfig
from strategies.airange.indicators import atr, sma
from strategies.airange.vectors import EMPTY_INPUT, RangeInputVector
from strategies.consolidation import ConsolidationTracker
from te_core.engine.context import StrategyContext
from te_core.engine.enter import InputVectorExtractor


class RangeInputExtractor(InputVectorExtractor):
    def __init__(
        self, context: StrategyContext, config: AIRangeConfig, tracker: ConsolidationTracker
    ) -> None:
        self.context = context
        self.config = config
        self.tracker = tracker

    def reference_volatility(self) -> float:
        """〔このメソッドがすること〕 ボラティリティ系列の ATR です（足りなければ NaN）。"""
        period = self.config.features.volatility_bars
        series = self.context.bars(self.config.strategy.volatility_series)
        if len(series) < period + 1:
            return math.nan
        return atr(list(reversed(list(series))), period)

    def current_input_vector(self) -> RangeInputVector:
        rng = self.tracker.current_range()
        if rng is None:
            return EMPTY_INPUT

        count = self.config.features.suffix_bars
        suffix = list(reversed(self.context.bars(self.config.strategy.suffix_series).latest(count)))
        if count <= 0 or len(suffix) != count:
            return EMPTY_INPUT

        volatility = self.reference_volatility()
        # 値動きの無いボラティリティ系列（ATR 0）も未計算と同じ扱い
        if math.isnan(volatility) or volatility <= 0.0:
            return EMPTY_INPUT

        period = self.config.features.sma_period
        closes = [b.close for b in self.context.primary_bars.latest(period)]
        average = sma(closes, period)
        if math.isnan(average):
            return EMPTY_INPUT

        # 直近の suffix 足が「建玉しようとする時刻」を決める
        return RangeInputVector(suffix[-1].time, rng, suffix, volatility, average)
