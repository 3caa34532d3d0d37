# 〔このモジュールがすること〕
# 戦略の各部品（エントリー判定・数量・決済シグナル・コントローラ）が共有する「ホスト」を提供します。
# - 時計（current_time）と足系列（BarSeries）
# - 建玉スナップショット（PositionState）と最終建玉時刻
# - 口座（初期資金 + 確定損益）

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from itertools import takewhile
from typing import Deque, Dict, Iterator, List, Mapping, Optional

from te_core.engine.models import Bar, Direction, MarketEvent

DEFAULT_SERIES = "default"


@dataclass(frozen=True)
class PositionState:
    """〔このクラスがすること〕 執行先から報告された現在の建玉です。"""

    direction: Direction = Direction.FLAT
    quantity: int = 0
    average_price: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.quantity != 0


@dataclass
class AccountState:
    initial_cash: float = 0.0
    realized_pnl: float = 0.0

    @property
    def equity(self) -> float:
        return self.initial_cash + self.realized_pnl


class BarSeries:
    """〔このクラスがすること〕
    1 つの足周期の確定足を時系列順に保持します。反復は新しい足から古い足の順です。
    """

    def __init__(self, name: str, maxlen: Optional[int] = None) -> None:
        self.name = name
        self._bars: Deque[Bar] = deque(maxlen=maxlen)

    def append(self, bar: Bar) -> None:
        self._bars.append(bar)

    def __len__(self) -> int:
        return len(self._bars)

    def __iter__(self) -> Iterator[Bar]:
        return reversed(self._bars)

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def latest(self, n: int) -> List[Bar]:
        """〔このメソッドがすること〕 直近 n 本を新しい順で返します（足りなければある分だけ）。"""
        if n <= 0:
            return []
        out: List[Bar] = []
        for bar in self:
            out.append(bar)
            if len(out) == n:
                break
        return out

    def since(self, t: datetime) -> List[Bar]:
        """〔このメソッドがすること〕 時刻が t より後の足を新しい順で返します。"""
        return list(takewhile(lambda bar: bar.time > t, self))


class StrategyContext:
    """〔このクラスがすること〕
    戦略部品に注入される共有ホストです。コントローラだけが更新し、他の部品は読むだけです。
    """

    def __init__(
        self,
        *,
        series: Optional[Mapping[str, BarSeries]] = None,
        initial_cash: float = 0.0,
        primary_series: str = DEFAULT_SERIES,
        max_bars: Optional[int] = None,
    ) -> None:
        self.primary_series = primary_series
        self._max_bars = max_bars
        self._series: Dict[str, BarSeries] = dict(series or {})
        self._series.setdefault(primary_series, BarSeries(primary_series, max_bars))
        self.position = PositionState()
        self.account = AccountState(initial_cash=float(initial_cash))
        self.current_time: datetime = datetime.min
        self.last_position_open_time: datetime = datetime.min
        self.event_series: Optional[str] = None
        self.current_bar: int = -1

    def bars(self, name: Optional[str] = None) -> BarSeries:
        """〔このメソッドがすること〕 名前付き足系列を返します（未登録なら空の系列を作成）。"""
        key = name or self.primary_series
        if key not in self._series:
            self._series[key] = BarSeries(key, self._max_bars)
        return self._series[key]

    @property
    def primary_bars(self) -> BarSeries:
        return self.bars(self.primary_series)

    def is_event_of(self, name: str) -> bool:
        """〔このメソッドがすること〕 今回のイベントが name 系列の足確定かどうかを返します。"""
        return self.event_series == name

    def advance(self, event: MarketEvent) -> None:
        """〔このメソッドがすること〕 足を系列へ積み、時計とイベント系列を進めます。"""
        self.bars(event.series).append(event.bar)
        self.event_series = event.series
        if event.bar.time > self.current_time:
            self.current_time = event.bar.time
        if event.series == self.primary_series:
            self.current_bar += 1
