# 〔このモジュールがすること〕
# エンジンのメトリクス（Prometheus）を一元管理します。
# - インスタンスごとに CollectorRegistry を持つので、複数戦略/テストで重複登録になりません。
# - HTTP エクスポータ（/metrics）は prom_port が指定されたときだけ起動します。

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from te_core.engine.models import OrderIntent
from te_core.utils.logger import get_logger

logger = get_logger("te_core.metrics")


class Metrics:
    """〔このクラスがすること〕
    発注件数・建玉の開閉・数量要求・学習レコード数などを Counter/Gauge で提供します。
    """

    def __init__(
        self,
        prom_port: Optional[int] = None,
        *,
        registry: Optional[CollectorRegistry] = None,
        strategy: str = "default",
    ) -> None:
        self.registry = registry or CollectorRegistry()
        self.strategy = strategy

        self.orders_submitted = Counter(
            "te_orders_submitted",
            "Orders submitted to the venue.",
            ["strategy", "action", "order_type"],
            registry=self.registry,
        )
        self.positions_opened = Counter(
            "te_positions_opened", "Flat to Open transitions.", ["strategy"], registry=self.registry
        )
        self.positions_closed = Counter(
            "te_positions_closed", "Open to Flat transitions.", ["strategy"], registry=self.registry
        )
        self.quantity_requests = Counter(
            "te_quantity_requests", "Quantity advisor invocations.", ["strategy"], registry=self.registry
        )
        self.open_quantity = Gauge(
            "te_open_quantity", "Currently open position size.", ["strategy"], registry=self.registry
        )
        self.realized_pnl = Gauge(
            "te_realized_pnl", "Cumulative realized PnL.", ["strategy"], registry=self.registry
        )
        self.training_records = Counter(
            "te_training_records", "Training records written.", ["strategy"], registry=self.registry
        )

        if prom_port is not None:
            start_http_server(int(prom_port), registry=self.registry)
            logger.info("Prometheus exporter started on :%s", prom_port)

    def on_order(self, order: OrderIntent) -> None:
        self.orders_submitted.labels(self.strategy, order.action.value, order.order_type.value).inc()

    def on_opened(self, quantity: int) -> None:
        self.positions_opened.labels(self.strategy).inc()
        self.open_quantity.labels(self.strategy).set(quantity)

    def on_position(self, quantity: int) -> None:
        self.open_quantity.labels(self.strategy).set(quantity)

    def on_closed(self, realized_pnl: float) -> None:
        self.positions_closed.labels(self.strategy).inc()
        self.open_quantity.labels(self.strategy).set(0)
        self.realized_pnl.labels(self.strategy).set(realized_pnl)

    def on_quantity_request(self) -> None:
        self.quantity_requests.labels(self.strategy).inc()

    def on_training_record(self, *_: object) -> None:
        self.training_records.labels(self.strategy).inc()

    def value(self, name: str, **labels: str) -> float:
        """〔このメソッドがすること〕 レジストリから現在値を読みます（テスト/サマリ用）。"""
        labels.setdefault("strategy", self.strategy)
        v = self.registry.get_sample_value(name, labels)
        return 0.0 if v is None else float(v)
