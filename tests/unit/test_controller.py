from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from te_core.engine.arbiter import ExitAdviceArbiter
from te_core.engine.context import StrategyContext
from te_core.engine.controller import PositionController
from te_core.engine.enter import EnterSignal
from te_core.engine.exits import ExitSignal
from te_core.engine.metrics import Metrics
from te_core.engine.models import (
    AdviceType,
    Direction,
    FillEvent,
    MarketEvent,
    OpenRequest,
    OrderAction,
    OrderIntent,
    OrderType,
)
from te_core.engine.quantity import QuantityAdvisor
from te_core.utils.decision_log import DecisionLogger


class SpyVenue:
    """〔このクラスがすること〕 発注を実際には出さず、受け取った注文だけを記録します。"""

    def __init__(self) -> None:
        self.orders: List[OrderIntent] = []

    def submit(self, order: OrderIntent) -> None:
        self.orders.append(order)


class ScriptedEnter(EnterSignal):
    """〔このクラスがすること〕 テスト側で差し替えた request をそのまま返します。"""

    def __init__(self, context: StrategyContext) -> None:
        super().__init__(context)
        self.request: Optional[OpenRequest] = None
        self.calls = 0

    def current_open_request(self) -> Optional[OpenRequest]:
        self.calls += 1
        return self.request


class CountingQuantity(QuantityAdvisor):
    def __init__(self, quantity: int = 10) -> None:
        self.quantity = quantity
        self.calls = 0

    def get_quantity(self, open_request: OpenRequest) -> int:
        self.calls += 1
        return self.quantity


class FixedExits(ExitSignal):
    """〔このクラスがすること〕 建玉中は損切り・利確・（任意で）成行を毎ティック出します。"""

    def __init__(self, context: StrategyContext, *, market: bool = False) -> None:
        super().__init__(context, "fixed", AdviceType.STOP_LOSS)
        self.market = market
        self.initialized: List[tuple] = []
        self.cleaned = 0

    def close_advices(self):
        q = self.initial_quantity
        if self.market:
            yield self.close_advice(q)
        yield self.close_advice(q, self.average_price - 1.0)

    def initialize(self, signal_context, signal, initial_quantity: int) -> None:
        super().initialize(signal_context, signal, initial_quantity)
        self.initialized.append((signal_context, signal, initial_quantity))

    def cleanup(self) -> None:
        super().cleanup()
        self.cleaned += 1


def _build(context: StrategyContext, *, warmup: int = 0, market: bool = False):
    """〔この関数がすること〕 スパイ部品でコントローラ一式を組み立てます。"""
    enter = ScriptedEnter(context)
    qty = CountingQuantity()
    exits = FixedExits(context, market=market)
    venue = SpyVenue()
    metrics = Metrics(strategy="unit")
    decisions = DecisionLogger()
    controller = PositionController(
        context,
        enter,
        qty,
        ExitAdviceArbiter(context, [exits]),
        venue,
        warmup_bars=warmup,
        name="unit",
        metrics=metrics,
        decisions=decisions,
    )
    return controller, enter, qty, exits, venue, metrics, decisions


def _tick(controller: PositionController, make_bar, minute: int, price: float = 100.0) -> None:
    controller.on_market_event(MarketEvent("default", make_bar(minute, price, price + 1, price - 1, price)))


def test_warmup_suppresses_entry_queries(context, make_bar) -> None:
    """〔このテストがすること〕 ウォームアップ本数に達するまでエントリー判定を呼ばないことを確認します。"""
    controller, enter, *_ = _build(context, warmup=3)
    for m in range(3):
        _tick(controller, make_bar, m)
    assert enter.calls == 0, "ウォームアップ中にエントリー判定が呼ばれました"
    _tick(controller, make_bar, 3)
    assert enter.calls == 1


def test_unchanged_context_does_not_refire(context, make_bar) -> None:
    """〔このテストがすること〕 同じ SignalContext が続く間は 1 度しか発注しないことを確認します。"""
    controller, enter, qty, _, venue, *_ = _build(context)
    enter.request = OpenRequest(Direction.LONG, "2024-01-02", "sig")
    for m in range(5):
        _tick(controller, make_bar, m)
    assert len(venue.orders) == 1
    assert qty.calls == 1, "同じ文脈で数量アドバイザが複数回呼ばれました"

    order = venue.orders[0]
    assert order.action is OrderAction.ENTER_LONG and order.order_type is OrderType.MARKET
    assert order.quantity == 10 and order.trade_label == "2024-01-02"


def test_flat_request_is_cached_without_order(context, make_bar) -> None:
    """〔このテストがすること〕 Flat の要求は文脈だけ記憶し、発注も数量要求もしないことを確認します。"""
    controller, enter, qty, _, venue, *_ = _build(context)
    enter.request = OpenRequest(Direction.FLAT, "ctx-1", None)
    _tick(controller, make_bar, 0)
    assert controller.last_signal_context == "ctx-1"
    assert venue.orders == [] and qty.calls == 0


def test_first_fill_opens_and_initializes_exits(context, make_bar) -> None:
    """〔このテストがすること〕 最初の約定で Open になり、決済シグナルが (文脈, シグナル, 数量) で初期化されることを確認します。"""
    controller, enter, _, exits, venue, metrics, decisions = _build(context)
    enter.request = OpenRequest(Direction.LONG, "ctx", "sig")
    _tick(controller, make_bar, 0)

    controller.on_fill_event(FillEvent(make_bar(1, 0, 0, 0, 0).time, Direction.LONG, 10, 100.0))

    assert controller.is_open
    assert exits.initialized == [("ctx", "sig", 10)]
    assert context.last_position_open_time == context.current_time
    # 約定直後に決済計画が出る（ストップ 99.0）
    stop = venue.orders[-1]
    assert stop.action is OrderAction.EXIT_LONG and stop.order_type is OrderType.STOP
    assert stop.price == 99.0 and stop.quantity == 10
    assert metrics.value("te_positions_opened_total") == 1.0
    assert len(decisions.events("position_opened")) == 1


def test_quantity_advisor_never_called_while_open(context, make_bar) -> None:
    """〔このテストがすること〕 建玉中は文脈が変わってもエントリー判定も数量要求もしないことを確認します。"""
    controller, enter, qty, *_ = _build(context)
    enter.request = OpenRequest(Direction.LONG, "a", None)
    _tick(controller, make_bar, 0)
    controller.on_fill_event(FillEvent(context.current_time, Direction.LONG, 10, 100.0))

    enter.request = OpenRequest(Direction.SHORT, "b", None)
    for m in range(1, 4):
        _tick(controller, make_bar, m)
    assert qty.calls == 1
    assert enter.calls == 1


def test_close_returns_to_flat_and_cleans_up(context, make_bar) -> None:
    """〔このテストがすること〕 残量 0 の報告で Flat に戻り、cleanup が呼ばれて次の建玉が可能になることを確認します。"""
    controller, enter, qty, exits, venue, metrics, _ = _build(context)
    enter.request = OpenRequest(Direction.SHORT, "a", None)
    _tick(controller, make_bar, 0)
    controller.on_fill_event(FillEvent(context.current_time, Direction.SHORT, 10, 100.0))
    controller.on_fill_event(
        FillEvent(context.current_time + timedelta(minutes=1), Direction.SHORT, 0, 0.0, 25.0)
    )

    assert not controller.is_open
    assert exits.cleaned == 1
    assert context.account.realized_pnl == 25.0
    assert controller.last_orders == {}
    assert metrics.value("te_positions_closed_total") == 1.0

    # 同じ文脈は再発火しない / 新しい文脈なら再度建玉する
    before = len(venue.orders)
    _tick(controller, make_bar, 2)
    assert len(venue.orders) == before
    enter.request = OpenRequest(Direction.LONG, "b", None)
    _tick(controller, make_bar, 3)
    assert venue.orders[-1].action is OrderAction.ENTER_LONG
    assert qty.calls == 2


def test_exit_order_types_follow_advice(context, make_bar) -> None:
    """〔このテストがすること〕 価格なし→成行、損切り→ストップでショート建玉なら EXIT_SHORT になることを確認します。"""
    controller, enter, _, _, venue, *_ = _build(context, market=True)
    enter.request = OpenRequest(Direction.SHORT, "a", None)
    _tick(controller, make_bar, 0)
    venue.orders.clear()
    controller.on_fill_event(FillEvent(context.current_time, Direction.SHORT, 10, 100.0))

    # 成行が全量なので成行 1 件のみ
    assert len(venue.orders) == 1
    order = venue.orders[0]
    assert order.action is OrderAction.EXIT_SHORT and order.order_type is OrderType.MARKET
    assert controller.last_orders["fixed"] == order


def test_partial_close_keeps_position_open(context, make_bar) -> None:
    """〔このテストがすること〕 一部決済では Open のままで、残量に合わせた決済計画を再送することを確認します。"""
    controller, enter, _, exits, venue, metrics, _ = _build(context)
    enter.request = OpenRequest(Direction.LONG, "a", None)
    _tick(controller, make_bar, 0)
    controller.on_fill_event(FillEvent(context.current_time, Direction.LONG, 10, 100.0))
    controller.on_fill_event(FillEvent(context.current_time, Direction.LONG, 4, 100.0, 6.0))

    assert controller.is_open and exits.cleaned == 0
    assert venue.orders[-1].quantity == 4
    assert metrics.value("te_open_quantity") == 4.0
