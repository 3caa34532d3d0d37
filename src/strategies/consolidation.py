# 〔このモジュールがすること〕
# 2 つのサンプル戦略が共有する「レンジ（持ち合い）」の計算と、1 日 1 回の再計算を管理します。
# - calculate_consolidation(): 指定時間帯の足から高値/安値/最終値を求める（足が無ければ None）
# - ConsolidationTracker: 自系列の足確定時にだけ計算し、日付が変わるか有効期限切れで破棄する

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from te_core.engine.context import BarSeries, StrategyContext
from te_core.utils.logger import get_logger
from te_core.utils.timeparse import ClockTime

logger = get_logger("strategies.consolidation")


@dataclass(frozen=True)
class ConsolidationRange:
    """〔このクラスがすること〕 1 日分のレンジ（開始/終了時刻・高値・安値・最終値）です。"""

    date: date
    start: datetime
    end: datetime
    range_high: float
    range_low: float
    last: float

    @property
    def size_high_low(self) -> float:
        return self.range_high - self.range_low


def calculate_consolidation(
    series: BarSeries,
    start: datetime,
    end: datetime,
    *,
    min_size: float = 0.0,
) -> Optional[ConsolidationRange]:
    """〔この関数がすること〕
    start < 足時刻 <= end の足からレンジを作ります。
    足が 1 本も無い、または高安の幅が min_size 以下なら None を返します。
    """
    bars = [b for b in series if start < b.time <= end]
    if not bars:
        return None
    # series の反復は新しい順
    high = max(b.high for b in bars)
    low = min(b.low for b in bars)
    if high - low <= min_size:
        return None
    return ConsolidationRange(
        date=end.date(),
        start=start,
        end=end,
        range_high=high,
        range_low=low,
        last=bars[0].close,
    )


class ConsolidationTracker:
    """〔このクラスがすること〕
    その日のレンジを遅延計算して保持します。計算は consolidation 系列の足確定時だけ行います。
    valid_for を指定すると、レンジ終了 + valid_for を過ぎたら破棄し、同じ日には作り直しません。
    """

    def __init__(
        self,
        context: StrategyContext,
        *,
        series: str,
        start: ClockTime,
        end: ClockTime,
        local_tz: str = "UTC",
        valid_for: Optional[timedelta] = None,
    ) -> None:
        self.context = context
        self.series = series
        self.start = start
        self.end = end
        self.local_tz = local_tz
        self.valid_for = valid_for
        self.current: Optional[ConsolidationRange] = None
        self._end_of_life = datetime.min

    def window(self, day: date) -> tuple[datetime, datetime]:
        """〔このメソッドがすること〕 day のレンジ時間帯（ローカル時刻）を返します。"""
        end = self.end.on(day, self.local_tz)
        start = self.start.on(day, self.local_tz)
        if start >= end:
            start = self.start.on(day - timedelta(days=1), self.local_tz)
        return start, end

    def current_range(self) -> Optional[ConsolidationRange]:
        now = self.context.current_time
        if self.current is not None and self.current.date != now.date():
            self.current = None
        if self.current is not None and self.valid_for is not None and now > self._end_of_life:
            self.current = None

        if self.current is None:
            if not self.context.is_event_of(self.series):
                return None
            if self.valid_for is not None and now.date() == self._end_of_life.date():
                return None

            start, end = self.window(now.date())
            if now < end:
                return None

            self.current = calculate_consolidation(self.context.bars(self.series), start, end)
            if self.current is None:
                logger.debug("no consolidation bars between %s and %s", start, end)
                return None
            if self.valid_for is not None:
                self._end_of_life = self.current.end + self.valid_for
            logger.info(
                "consolidation %s: high=%.5f low=%.5f last=%.5f",
                self.current.date,
                self.current.range_high,
                self.current.range_low,
                self.current.last,
            )
        return self.current
