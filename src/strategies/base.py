# 〔このモジュールがすること〕
# サンプル戦略の共通土台です。StrategyContext・決済アービタ・建玉コントローラを組み立て、
# ホスト（リプレイ/実運用）からの足確定・約定報告をコントローラへ中継します。
# 個々の戦略は create_enter_signal / create_exit_signals / create_quantity_advisor を実装します。

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from te_core.engine.arbiter import ExitAdviceArbiter
from te_core.engine.context import StrategyContext
from te_core.engine.controller import OrderVenue, PositionController
from te_core.engine.enter import EnterSignal
from te_core.engine.exits import ExitSignal
from te_core.engine.metrics import Metrics
from te_core.engine.models import FillEvent, MarketEvent
from te_core.engine.quantity import QuantityAdvisor
from te_core.utils.decision_log import DecisionLogger
from te_core.utils.logger import get_logger


class BarStrategy(ABC):
    """〔このクラスがすること〕 足確定駆動の戦略 1 つ分（部品の生成と配線）を受け持ちます。"""

    def __init__(
        self,
        name: str,
        *,
        venue: OrderVenue,
        context: StrategyContext,
        warmup_bars: int = 0,
        metrics: Optional[Metrics] = None,
        decisions: Optional[DecisionLogger] = None,
    ) -> None:
        self.name = name
        self.context = context
        self.venue = venue
        self.metrics = metrics
        self.decisions = decisions
        self.logger = get_logger(f"strategies.{name}")

        self.enter_signal = self.create_enter_signal()
        self.exit_signals: List[ExitSignal] = list(self.create_exit_signals())
        self.arbiter = ExitAdviceArbiter(context, self.exit_signals)
        self.quantity_advisor = self.create_quantity_advisor()
        self.controller = PositionController(
            context,
            self.enter_signal,
            self.quantity_advisor,
            self.arbiter,
            venue,
            warmup_bars=warmup_bars,
            name=name,
            metrics=metrics,
            decisions=decisions,
        )

    # ───────────── 戦略ごとの部品 ─────────────

    @abstractmethod
    def create_enter_signal(self) -> EnterSignal:
        ...

    @abstractmethod
    def create_exit_signals(self) -> Iterable[ExitSignal]:
        ...

    @abstractmethod
    def create_quantity_advisor(self) -> QuantityAdvisor:
        ...

    # ───────────── ホストからの入口 ─────────────

    def start(self) -> None:
        """〔このメソッドがすること〕 データ読み込み完了時に呼ばれます（エントリー判定の開始フック）。"""
        self.logger.info("strategy %s started (exits=%s)", self.name, [s.name for s in self.exit_signals])
        self.enter_signal.start()

    def stop(self) -> None:
        """〔このメソッドがすること〕 終了時に呼ばれます（学習データのフラッシュなど）。"""
        self.enter_signal.stop()
        self.logger.info(
            "strategy %s stopped (realized_pnl=%.2f)", self.name, self.context.account.realized_pnl
        )

    def on_market_event(self, event: MarketEvent) -> None:
        self.controller.on_market_event(event)

    def on_fill_event(self, fill: FillEvent) -> None:
        self.controller.on_fill_event(fill)
