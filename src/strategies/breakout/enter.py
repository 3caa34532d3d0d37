# 〔このモジュールがすること〕
# レンジブレイクのエントリー判定です。
# - その日のレンジが確定していなければ見送り
# - 1 日 1 トレードまで（今日すでに建玉していれば見送り）
# - エントリー締め切り時刻を過ぎたら見送り
# - 直近足の高値がレンジ上限を超えたら Long、安値がレンジ下限を割ったら Short

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from strategies.breakout.config import BreakoutConfig
from strategies.consolidation import ConsolidationRange, ConsolidationTracker
from te_core.engine.context import StrategyContext
from te_core.engine.enter import EnterSignal
from te_core.engine.models import Direction, OpenRequest


@dataclass(frozen=True)
class BreakoutContext:
    """〔このクラスがすること〕 シグナル文脈（= その日のレンジ）。等価性はレンジの日付で決まります。"""

    consolidation: Optional[ConsolidationRange]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BreakoutContext):
            return NotImplemented
        if self.consolidation is None or other.consolidation is None:
            return self.consolidation is other.consolidation
        return self.consolidation.date == other.consolidation.date

    def __hash__(self) -> int:
        return 0 if self.consolidation is None else hash(self.consolidation.date)

    def __str__(self) -> str:
        if self.consolidation is None:
            return ""
        return self.consolidation.end.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class BreakoutSignal:
    context: BreakoutContext
    direction: Direction


class BreakoutEnterSignal(EnterSignal):
    """〔このクラスがすること〕 足確定ごとにレンジブレイクの有無を判定します。"""

    def __init__(
        self, context: StrategyContext, config: BreakoutConfig, tracker: ConsolidationTracker
    ) -> None:
        super().__init__(context)
        self.config = config
        self.tracker = tracker

    def _do_not_open(self) -> OpenRequest:
        return OpenRequest(Direction.FLAT, None, None)

    def current_open_request(self) -> OpenRequest:
        rng = self.tracker.current_range()
        if rng is None:
            return self._do_not_open()

        now = self.context.current_time
        if self.context.last_position_open_time.date() == now.date():
            return self._do_not_open()

        max_enter = self.config.session.max_enter.on(now.date(), self.config.strategy.local_tz)
        if now > max_enter:
            return self._do_not_open()

        last = self.context.primary_bars.last
        if last is None:
            return self._do_not_open()

        ctx = BreakoutContext(rng)
        if last.high > rng.range_high:
            return OpenRequest(Direction.LONG, ctx, BreakoutSignal(ctx, Direction.LONG))
        if last.low < rng.range_low:
            return OpenRequest(Direction.SHORT, ctx, BreakoutSignal(ctx, Direction.SHORT))
        return self._do_not_open()
