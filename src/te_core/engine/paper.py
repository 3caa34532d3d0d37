# 〔このモジュールがすること〕
# 実取引所の代わりに注文を疑似約定させる「ペーパー執行先」です（リプレイ/テスト用）。
# - エントリー成行: 次の足の始値で約定
# - 決済成行: 次の足の始値で約定
# - 決済ストップ/指値: 次の 1 本だけ有効な待機注文（発生源ラベルごとに 1 本、再送で置き換え）
#   価格に触れたら約定（窓開けで越えていれば始値で約定）
# 約定ごとに「約定後の建玉スナップショット」を on_fill コールバックへ渡します。

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from te_core.engine.models import (
    Bar,
    Direction,
    FillEvent,
    OrderAction,
    OrderIntent,
    OrderType,
)
from te_core.utils.logger import get_logger

logger = get_logger("te_core.paper")


@dataclass
class Trade:
    """〔このクラスがすること〕 1 回の約定（ログ/集計用）を保持します。"""

    time: datetime
    action: OrderAction
    quantity: int
    price: float
    source: str
    trade_label: str
    realized_pnl: float = 0.0


class PaperVenue:
    """〔このクラスがすること〕
    OrderVenue の実装です。process_bar(bar) を足ごとに（戦略へ足を渡す前に）呼びます。
    """

    def __init__(
        self,
        on_fill: Optional[Callable[[FillEvent], None]] = None,
        *,
        point_value: float = 1.0,
    ) -> None:
        self.on_fill = on_fill
        self.point_value = float(point_value)
        self.direction = Direction.FLAT
        self.quantity = 0
        self.average_price = 0.0
        self.realized_pnl = 0.0
        self.trades: List[Trade] = []
        self._entry: Optional[OrderIntent] = None
        self._market_exits: Dict[str, OrderIntent] = {}
        self._working: Dict[str, OrderIntent] = {}

    # ───────────── 受注 ─────────────

    def submit(self, order: OrderIntent) -> None:
        if order.quantity <= 0:
            logger.debug("ignored zero-quantity order from %s", order.source)
            return
        if order.is_entry:
            if self.quantity != 0 or self._entry is not None:
                logger.warning("entry %s ignored: position already open or pending", order.trade_label)
                return
            self._entry = order
        elif self.quantity == 0:
            logger.debug("exit %s from %s ignored: no open position", order.action.value, order.source)
        elif order.order_type is OrderType.MARKET:
            self._market_exits[order.source] = order
        else:
            self._working[order.source] = order

    @property
    def working_orders(self) -> List[OrderIntent]:
        return list(self._working.values())

    # ───────────── 約定処理 ─────────────

    def process_bar(self, bar: Bar) -> List[FillEvent]:
        """〔このメソッドがすること〕 保留中の注文を bar で評価し、発生した約定を返します。"""
        fills: List[FillEvent] = []

        # この足で評価するのは、足の開始時点で既に出ていた注文だけ
        entry, self._entry = self._entry, None
        market, self._market_exits = list(self._market_exits.values()), {}
        working = list(self._working.values())
        self._working.clear()

        if entry is not None:
            fills.append(self._emit(self._open(bar, entry)))

        for order in market:
            if self.quantity == 0:
                break
            fills.append(self._emit(self._close(bar, order, bar.open)))

        # 始値から近い順に評価（同じ足の中で先に触れる方）
        triggered = [(o, p) for o in working if (p := self._trigger_price(bar, o)) is not None]
        triggered.sort(key=lambda item: abs(item[1] - bar.open))
        for order, price in triggered:
            if self.quantity == 0:
                break
            fills.append(self._emit(self._close(bar, order, price)))
        return fills

    def _emit(self, fill: FillEvent) -> FillEvent:
        if self.on_fill is not None:
            self.on_fill(fill)
        return fill

    def _trigger_price(self, bar: Bar, order: OrderIntent) -> Optional[float]:
        if order.price is None:
            return bar.open
        price = order.price
        selling = order.action is OrderAction.EXIT_LONG
        if order.order_type is OrderType.STOP:
            if selling and bar.low <= price:
                return min(price, bar.open)
            if not selling and bar.high >= price:
                return max(price, bar.open)
        elif order.order_type is OrderType.LIMIT:
            if selling and bar.high >= price:
                return max(price, bar.open)
            if not selling and bar.low <= price:
                return min(price, bar.open)
        return None

    def _open(self, bar: Bar, order: OrderIntent) -> FillEvent:
        self.direction = Direction.LONG if order.action is OrderAction.ENTER_LONG else Direction.SHORT
        self.quantity = order.quantity
        self.average_price = bar.open
        self.trades.append(
            Trade(bar.time, order.action, order.quantity, bar.open, order.source, order.trade_label)
        )
        logger.debug("paper fill %s %d @ %.5f", order.action.value, order.quantity, bar.open)
        return FillEvent(bar.time, self.direction, self.quantity, self.average_price)

    def _close(self, bar: Bar, order: OrderIntent, price: float) -> FillEvent:
        qty = min(order.quantity, self.quantity)
        pnl = (price - self.average_price) * qty * self.direction.sign * self.point_value
        self.quantity -= qty
        self.realized_pnl += pnl
        self.trades.append(
            Trade(bar.time, order.action, qty, price, order.source, order.trade_label, pnl)
        )
        logger.debug(
            "paper fill %s %d @ %.5f (%s) pnl=%.2f", order.action.value, qty, price, order.source, pnl
        )
        if self.quantity == 0:
            direction = self.direction
            self.direction = Direction.FLAT
            self.average_price = 0.0
            self._working.clear()
            self._market_exits.clear()
            return FillEvent(bar.time, direction, 0, 0.0, pnl)
        return FillEvent(bar.time, self.direction, self.quantity, self.average_price, pnl)
