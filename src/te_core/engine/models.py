# 〔このモジュールがすること〕
# エンジン全体で受け渡す値オブジェクト（方向・決済アドバイス・建玉要求・足・約定・注文）を定義します。

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Direction(str, Enum):
    """〔このクラスがすること〕 建玉の方向（Long/Short/Flat）を表します。"""

    LONG = "long"
    SHORT = "short"
    FLAT = "flat"

    @property
    def sign(self) -> int:
        """〔このメソッドがすること〕 Long=+1 / Short=-1 / Flat=0 を返します。"""
        if self is Direction.LONG:
            return 1
        if self is Direction.SHORT:
            return -1
        return 0


class AdviceType(str, Enum):
    """〔このクラスがすること〕 決済アドバイスの種別（損切り/利確）です。"""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"


class OrderAction(str, Enum):
    ENTER_LONG = "enter_long"
    ENTER_SHORT = "enter_short"
    EXIT_LONG = "exit_long"
    EXIT_SHORT = "exit_short"


class OrderType(str, Enum):
    MARKET = "market"
    STOP = "stop"
    LIMIT = "limit"


@dataclass(frozen=True)
class CloseAdvice:
    """〔このクラスがすること〕
    1 つの決済候補です。quantity は「初期建玉サイズ基準の絶対量」で、残量基準ではありません。
    price が None なら成行です。
    """

    quantity: int
    source: str
    advice_type: AdviceType
    price: Optional[float] = None

    @property
    def is_market(self) -> bool:
        return self.price is None


@dataclass(frozen=True)
class OpenRequest:
    """〔このクラスがすること〕 建玉要求（方向・シグナル文脈・任意のシグナル本体）です。"""

    direction: Direction
    context: Any
    signal: Any


@dataclass(frozen=True)
class Bar:
    time: datetime
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class MarketEvent:
    """〔このクラスがすること〕 ある足系列（series）で 1 本の足が確定したことを表します。"""

    series: str
    bar: Bar

    @property
    def time(self) -> datetime:
        return self.bar.time


@dataclass(frozen=True)
class FillEvent:
    """〔このクラスがすること〕
    約定後の建玉スナップショットです（quantity は約定後の残り建玉数量）。
    realized_pnl はこの約定で確定した損益です。
    """

    time: datetime
    direction: Direction
    quantity: int
    average_price: float
    realized_pnl: float = 0.0


@dataclass(frozen=True)
class OrderIntent:
    """〔このクラスがすること〕 執行先へ渡す注文（数量・種別・価格・発生源ラベル・取引IDラベル）です。"""

    action: OrderAction
    quantity: int
    order_type: OrderType
    source: str
    trade_label: str
    price: Optional[float] = None

    @property
    def is_entry(self) -> bool:
        return self.action in (OrderAction.ENTER_LONG, OrderAction.ENTER_SHORT)
