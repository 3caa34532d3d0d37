from __future__ import annotations

import json

from te_core.engine.metrics import Metrics
from te_core.engine.models import OrderAction, OrderIntent, OrderType
from te_core.utils.decision_log import DecisionLogger


def _order(action: OrderAction, order_type: OrderType) -> OrderIntent:
    return OrderIntent(action, 10, order_type, "src", "trade")


def test_metrics_count_orders_and_positions() -> None:
    """〔このテストがすること〕 発注・建玉開閉・数量要求がラベル付きで数えられることを確認します。"""
    m = Metrics(strategy="breakout")
    m.on_order(_order(OrderAction.ENTER_LONG, OrderType.MARKET))
    m.on_order(_order(OrderAction.EXIT_LONG, OrderType.STOP))
    m.on_order(_order(OrderAction.EXIT_LONG, OrderType.STOP))
    m.on_quantity_request()
    m.on_opened(10)
    assert m.value("te_open_quantity") == 10.0

    m.on_closed(42.5)
    m.on_training_record(object())

    assert m.value("te_orders_submitted_total", action="exit_long", order_type="stop") == 2.0
    assert m.value("te_orders_submitted_total", action="enter_long", order_type="market") == 1.0
    assert m.value("te_quantity_requests_total") == 1.0
    assert m.value("te_positions_opened_total") == 1.0
    assert m.value("te_positions_closed_total") == 1.0
    assert m.value("te_open_quantity") == 0.0
    assert m.value("te_realized_pnl") == 42.5
    assert m.value("te_training_records_total") == 1.0


def test_metrics_instances_do_not_share_registry() -> None:
    """〔このテストがすること〕 インスタンスごとにレジストリが分かれ、重複登録エラーにならないことを確認します。"""
    a = Metrics(strategy="x")
    b = Metrics(strategy="x")
    a.on_quantity_request()
    assert a.value("te_quantity_requests_total") == 1.0
    assert b.value("te_quantity_requests_total") == 0.0


def test_decision_logger_buffers_and_appends_jsonl(tmp_path) -> None:
    """〔このテストがすること〕 記録がリングバッファと JSONL ファイルの両方に残ることを確認します。"""
    path = tmp_path / "decisions.jsonl"
    log = DecisionLogger(maxlen=2, filepath=str(path))
    log.log("open_request", direction=OrderAction.ENTER_LONG, trade="2024-01-02")
    log.log("order_submitted", quantity=5)
    log.log("position_closed", equity=1.5)

    assert [r["event"] for r in log.latest()] == ["order_submitted", "position_closed"]
    assert log.events("position_closed")[0]["equity"] == 1.5
    assert log.latest(0) == []

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["event"] for r in lines] == ["open_request", "order_submitted", "position_closed"]
    assert lines[0]["direction"] == "enter_long"
