from __future__ import annotations

from typing import List

import pytest

from te_core.engine.models import Direction, FillEvent, OrderAction, OrderIntent, OrderType
from te_core.engine.paper import PaperVenue


def _enter(action=OrderAction.ENTER_LONG, qty: int = 10) -> OrderIntent:
    return OrderIntent(action, qty, OrderType.MARKET, "trade", "trade")


def _exit(source: str, order_type: OrderType, qty: int, price=None, action=OrderAction.EXIT_LONG) -> OrderIntent:
    return OrderIntent(action, qty, order_type, source, "trade", price)


def _venue():
    """〔この関数がすること〕 約定を記録するペーパー執行先を返します。"""
    fills: List[FillEvent] = []
    return PaperVenue(fills.append), fills


def test_entry_fills_at_next_open(make_bar) -> None:
    venue, fills = _venue()
    venue.submit(_enter())
    venue.process_bar(make_bar(1, 100.0, 101.0, 99.0, 100.5))
    assert fills == [FillEvent(make_bar(1, 0, 0, 0, 0).time, Direction.LONG, 10, 100.0)]
    assert venue.quantity == 10 and venue.average_price == 100.0


def test_second_entry_is_ignored_while_open(make_bar) -> None:
    venue, fills = _venue()
    venue.submit(_enter())
    venue.submit(_enter(OrderAction.ENTER_SHORT))
    venue.process_bar(make_bar(1, 100.0, 101.0, 99.0, 100.0))
    venue.submit(_enter(OrderAction.ENTER_SHORT))
    venue.process_bar(make_bar(2, 100.0, 101.0, 99.0, 100.0))
    assert len(fills) == 1 and venue.direction is Direction.LONG


def test_exit_while_flat_is_ignored(make_bar) -> None:
    venue, fills = _venue()
    venue.submit(_exit("sl", OrderType.STOP, 10, 95.0))
    venue.process_bar(make_bar(1, 100.0, 101.0, 90.0, 100.0))
    assert fills == [] and venue.working_orders == []


def test_stop_triggers_and_gap_fills_at_open(make_bar) -> None:
    """〔このテストがすること〕 ストップは価格で約定し、窓を開けて越えた場合は始値で約定することを確認します。"""
    venue, fills = _venue()
    venue.submit(_enter())
    venue.process_bar(make_bar(1, 100.0, 100.0, 100.0, 100.0))

    venue.submit(_exit("sl", OrderType.STOP, 10, 98.0))
    venue.process_bar(make_bar(2, 97.0, 97.5, 96.0, 97.0))
    assert fills[-1].quantity == 0
    assert venue.trades[-1].price == 97.0
    assert fills[-1].realized_pnl == pytest.approx(-30.0)
    assert venue.direction is Direction.FLAT


def test_limit_partial_then_stop(make_bar) -> None:
    """〔このテストがすること〕 利確指値で一部決済後、残りがストップで閉じられ損益が積み上がることを確認します。"""
    venue, fills = _venue()
    venue.submit(_enter(qty=10))
    venue.process_bar(make_bar(1, 100.0, 100.0, 100.0, 100.0))

    venue.submit(_exit("tp", OrderType.LIMIT, 4, 102.0))
    venue.submit(_exit("sl", OrderType.STOP, 10, 95.0))
    venue.process_bar(make_bar(2, 100.0, 103.0, 99.0, 102.5))
    assert fills[-1].quantity == 6 and fills[-1].realized_pnl == pytest.approx(8.0)
    # 約定しなかった待機注文は 1 本限り
    assert venue.working_orders == []

    venue.submit(_exit("sl", OrderType.STOP, 6, 95.0))
    venue.process_bar(make_bar(3, 96.0, 96.0, 94.0, 94.5))
    assert fills[-1].quantity == 0
    assert venue.realized_pnl == pytest.approx(8.0 - 30.0)


def test_nearest_trigger_fills_first(make_bar) -> None:
    """〔このテストがすること〕 同じ足で両方触れたら、始値に近い注文から約定することを確認します。"""
    venue, _ = _venue()
    venue.submit(_enter(qty=10))
    venue.process_bar(make_bar(1, 100.0, 100.0, 100.0, 100.0))

    venue.submit(_exit("tp", OrderType.LIMIT, 10, 104.0))
    venue.submit(_exit("sl", OrderType.STOP, 10, 99.0))
    venue.process_bar(make_bar(2, 100.0, 105.0, 95.0, 100.0))
    assert [t.source for t in venue.trades[1:]] == ["sl"]


def test_short_market_exit_fills_at_open(make_bar) -> None:
    venue, fills = _venue()
    venue.submit(_enter(OrderAction.ENTER_SHORT, 5))
    venue.process_bar(make_bar(1, 100.0, 100.0, 100.0, 100.0))
    venue.submit(_exit("time", OrderType.MARKET, 5, action=OrderAction.EXIT_SHORT))
    venue.submit(_exit("time", OrderType.MARKET, 5, action=OrderAction.EXIT_SHORT))
    venue.process_bar(make_bar(2, 90.0, 91.0, 89.0, 90.0))
    assert fills[-1] == FillEvent(make_bar(2, 0, 0, 0, 0).time, Direction.SHORT, 0, 0.0, 50.0)
    assert len(venue.trades) == 2
