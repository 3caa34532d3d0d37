# 〔このモジュールがすること〕
# 決済アドバイスを出す「決済シグナル」の基底クラスと、汎用のトレーリングストップを提供します。
# 各決済シグナルは建玉ごとに initialize → (毎ティック close_advices) → cleanup の順で使われます。

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, Optional

from te_core.engine.context import BarSeries, StrategyContext
from te_core.engine.models import AdviceType, Bar, CloseAdvice, Direction


class ExitSignal(ABC):
    """〔このクラスがすること〕
    1 つの決済ルールです。close_advices() はティックごとに 1 回だけ列挙される前提です。
    """

    def __init__(self, context: StrategyContext, name: str, advice_type: AdviceType) -> None:
        self.context = context
        self.name = name
        self.advice_type = advice_type
        self.signal_context: Any = None
        self.signal: Any = None
        self.initial_quantity = 0

    @abstractmethod
    def close_advices(self) -> Iterable[CloseAdvice]:
        ...

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        """〔このメソッドがすること〕 建玉開始時に文脈・シグナル・初期数量を受け取ります。"""
        self.signal_context = signal_context
        self.signal = signal
        self.initial_quantity = int(initial_quantity)

    def cleanup(self) -> None:
        """〔このメソッドがすること〕 建玉終了時に取引スコープの状態を破棄します。"""
        self.signal_context = None
        self.signal = None

    def close_advice(self, quantity: int, price: Optional[float] = None) -> CloseAdvice:
        """〔このメソッドがすること〕 自分の名前と種別でアドバイスを作ります。"""
        return CloseAdvice(
            quantity=int(quantity),
            source=self.name,
            advice_type=self.advice_type,
            price=None if price is None else float(price),
        )

    @property
    def direction(self) -> Direction:
        return self.context.position.direction

    @property
    def average_price(self) -> float:
        return self.context.position.average_price

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class TrailingStopLoss(ExitSignal):
    """〔このクラスがすること〕
    建玉後の足を 1 本ずつ取り込み、Long は安値−距離の最大値、Short は高値+距離の最小値へ
    ストップを切り上げ（切り下げ）ます。activate() が True になるまでは追従しません。
    """

    def __init__(self, context: StrategyContext, name: str) -> None:
        super().__init__(context, name, AdviceType.STOP_LOSS)
        self.level: Optional[float] = None
        self._active = False
        self._last_seen = None

    @property
    @abstractmethod
    def bars(self) -> BarSeries:
        ...

    @property
    @abstractmethod
    def stop_distance(self) -> float:
        ...

    def activate(self, bar: Bar) -> bool:
        return True

    def _new_bars(self) -> Iterator[Bar]:
        since = self._last_seen or self.context.last_position_open_time
        return reversed(self.bars.since(since))

    def close_advices(self) -> Iterator[CloseAdvice]:
        for bar in self._new_bars():
            self._last_seen = bar.time
            if not self._active:
                self._active = self.activate(bar)
            if not self._active:
                continue
            if self.direction is Direction.LONG:
                nxt = bar.low - self.stop_distance
                self.level = nxt if self.level is None else max(self.level, nxt)
            elif self.direction is Direction.SHORT:
                nxt = bar.high + self.stop_distance
                self.level = nxt if self.level is None else min(self.level, nxt)

        if self.level is not None:
            yield self.close_advice(self.initial_quantity, self.level)

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        self.level = None
        self._active = False
        self._last_seen = None

    def cleanup(self) -> None:
        super().cleanup()
        self.level = None
        self._active = False
        self._last_seen = None
