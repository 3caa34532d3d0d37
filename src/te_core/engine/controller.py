# 〔このモジュールがすること〕
# 建玉ライフサイクル（Flat → Open → Flat）を管理する最上位のステートマシンです。
# - 足確定ごと: Flat ならエントリー判定 → 数量決定 → 成行発注、Open なら決済計画を発注
# - 約定報告ごと: 最初の約定で Open に遷移して決済シグナル群を初期化、残量 0 で Flat に戻す
# 判定経路は単一スレッド・同期で、I/O を待つことはありません。

from __future__ import annotations

from typing import Any, Optional, Protocol

from te_core.engine.arbiter import ExitAdviceArbiter
from te_core.engine.context import PositionState, StrategyContext
from te_core.engine.enter import EnterSignal
from te_core.engine.metrics import Metrics
from te_core.engine.models import (
    AdviceType,
    CloseAdvice,
    Direction,
    FillEvent,
    MarketEvent,
    OrderAction,
    OrderIntent,
    OrderType,
)
from te_core.engine.quantity import QuantityAdvisor
from te_core.utils.decision_log import DecisionLogger
from te_core.utils.logger import get_logger


class OrderVenue(Protocol):
    """〔このクラスがすること〕 注文の受け口（実取引所/ペーパー/テスト用スパイ）です。"""

    def submit(self, order: OrderIntent) -> None:
        ...


def _label(context: Any) -> str:
    return "" if context is None else str(context)


class PositionController:
    """〔このクラスがすること〕
    1 度に 1 つの建玉だけを持ち、エントリー判定・数量アドバイザ・決済アービタを束ねます。
    """

    def __init__(
        self,
        context: StrategyContext,
        enter_signal: EnterSignal,
        quantity_advisor: QuantityAdvisor,
        arbiter: ExitAdviceArbiter,
        venue: OrderVenue,
        *,
        warmup_bars: int = 0,
        name: str = "default",
        metrics: Optional[Metrics] = None,
        decisions: Optional[DecisionLogger] = None,
    ) -> None:
        self.context = context
        self.enter_signal = enter_signal
        self.quantity_advisor = quantity_advisor
        self.arbiter = arbiter
        self.venue = venue
        self.warmup_bars = int(warmup_bars)
        self.name = name
        self.metrics = metrics
        self.decisions = decisions
        self.logger = get_logger(f"strategies.{name}.controller")

        self._is_open = False
        self._last_context: Any = None
        self._last_signal: Any = None
        self._last_orders: dict[str, OrderIntent] = {}

    # ───────────── 状態の読み出し ─────────────

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def last_signal_context(self) -> Any:
        return self._last_context

    @property
    def last_signal(self) -> Any:
        return self._last_signal

    @property
    def last_orders(self) -> dict[str, OrderIntent]:
        """〔このメソッドがすること〕 現在の建玉で最後に出した決済注文（発生源ラベル別）です。"""
        return dict(self._last_orders)

    # ───────────── イベント入口 ─────────────

    def on_market_event(self, event: MarketEvent) -> None:
        """〔このメソッドがすること〕 足確定を処理します（ウォームアップ中は何もしない）。"""
        self.context.advance(event)
        if self.context.current_bar < self.warmup_bars:
            return

        if not self._is_open and not self.context.position.is_open:
            self._try_open()
        else:
            self._process_close_orders()

    def on_fill_event(self, fill: FillEvent) -> None:
        """〔このメソッドがすること〕 約定後の建玉報告で Open/Flat を遷移させます。"""
        quantity = abs(int(fill.quantity))
        self.context.position = PositionState(
            direction=fill.direction if quantity else Direction.FLAT,
            quantity=quantity,
            average_price=float(fill.average_price) if quantity else 0.0,
        )
        self.context.account.realized_pnl += float(fill.realized_pnl)

        if quantity == 0:
            if self._is_open:
                self.arbiter.cleanup()
                self.logger.info(
                    "position closed [%s] realized_pnl=%.2f",
                    _label(self._last_context),
                    self.context.account.realized_pnl,
                )
                if self.metrics is not None:
                    self.metrics.on_closed(self.context.account.realized_pnl)
                self._decide("position_closed", trade=_label(self._last_context),
                             equity=self.context.account.equity)
            self._is_open = False
            self._last_orders.clear()
            return

        if not self._is_open:
            self._is_open = True
            self.context.last_position_open_time = self.context.current_time
            self.arbiter.initialize(self._last_context, self._last_signal, quantity)
            self.logger.info(
                "position opened [%s] %s %d @ %.5f",
                _label(self._last_context),
                fill.direction.value,
                quantity,
                fill.average_price,
            )
            if self.metrics is not None:
                self.metrics.on_opened(quantity)
            self._decide("position_opened", trade=_label(self._last_context),
                         direction=fill.direction, quantity=quantity, price=fill.average_price)
        elif self.metrics is not None:
            self.metrics.on_position(quantity)

        self._process_close_orders()

    # ───────────── 内部処理 ─────────────

    def _try_open(self) -> None:
        request = self.enter_signal.current_open_request()
        if request is None:
            return
        if request.context == self._last_context:
            return

        self._last_context = request.context
        self._last_signal = request.signal
        self._decide("open_request", trade=_label(request.context), direction=request.direction)

        if request.direction is Direction.LONG:
            action = OrderAction.ENTER_LONG
        elif request.direction is Direction.SHORT:
            action = OrderAction.ENTER_SHORT
        else:
            return

        if self.metrics is not None:
            self.metrics.on_quantity_request()
        quantity = int(self.quantity_advisor.get_quantity(request))
        label = _label(request.context)
        self._submit(
            OrderIntent(
                action=action,
                quantity=quantity,
                order_type=OrderType.MARKET,
                source=label,
                trade_label=label,
            )
        )

    def _process_close_orders(self) -> None:
        direction = self.context.position.direction
        if direction is Direction.FLAT:
            return
        for advice in self.arbiter.close_advices():
            order = self._exit_order(advice, direction)
            self._last_orders[advice.source] = order
            self._submit(order)

    def _exit_order(self, advice: CloseAdvice, direction: Direction) -> OrderIntent:
        action = OrderAction.EXIT_LONG if direction is Direction.LONG else OrderAction.EXIT_SHORT
        if advice.price is None:
            order_type = OrderType.MARKET
        elif advice.advice_type is AdviceType.STOP_LOSS:
            order_type = OrderType.STOP
        else:
            order_type = OrderType.LIMIT
        return OrderIntent(
            action=action,
            quantity=advice.quantity,
            order_type=order_type,
            source=advice.source,
            trade_label=_label(self._last_context),
            price=advice.price,
        )

    def _submit(self, order: OrderIntent) -> None:
        self.logger.debug(
            "submit %s %s qty=%d price=%s source=%s trade=%s",
            order.action.value,
            order.order_type.value,
            order.quantity,
            order.price,
            order.source,
            order.trade_label,
        )
        self.venue.submit(order)
        if self.metrics is not None:
            self.metrics.on_order(order)
        self._decide("order_submitted", action=order.action, order_type=order.order_type,
                     quantity=order.quantity, price=order.price, source=order.source,
                     trade=order.trade_label)

    def _decide(self, event: str, **fields: Any) -> None:
        if self.decisions is not None:
            self.decisions.log(event, t_bar=self.context.current_time, **fields)
