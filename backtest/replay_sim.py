# 〔このスクリプトがすること〕
# 足データの CSV（time,open,high,low,close）を時系列にマージして戦略へ 1 本ずつ流し、
# ペーパー執行先（PaperVenue）で疑似約定させるリプレイです。
# 主系列の足ごとに「保留注文の約定 → 戦略へ足確定」の順で処理し、最後に戦略を停止して
# （学習モードなら学習データを書き切って）サマリを表示します。I/O はローカルファイルのみです。

from __future__ import annotations

import argparse
import csv
import heapq
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from strategies.airange import AIRangeStrategy, load_airange_config
from strategies.base import BarStrategy
from strategies.breakout import BreakoutStrategy, load_breakout_config
from te_core.config import load_settings
from te_core.engine.metrics import Metrics
from te_core.engine.models import Bar, MarketEvent
from te_core.engine.paper import PaperVenue
from te_core.utils.config import ConfigError
from te_core.utils.decision_log import DecisionLogger
from te_core.utils.logger import get_logger, setup_logger

logger = get_logger("replay")

STRATEGIES = ("breakout", "airange")


# ─────────────────────────────── 足データ読み込み ───────────────────────────────


def load_bars(path: str | Path) -> List[Bar]:
    """〔この関数がすること〕 CSV（ヘッダ: time,open,high,low,close）を時刻順の Bar 列にします。"""
    bars: List[Bar] = []
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        for i, row in enumerate(csv.DictReader(f), start=2):
            try:
                bars.append(
                    Bar(
                        time=datetime.fromisoformat(row["time"].strip()),
                        open=float(row["open"]),
                        high=float(row["high"]),
                        low=float(row["low"]),
                        close=float(row["close"]),
                    )
                )
            except (KeyError, ValueError, AttributeError) as exc:
                raise ConfigError(f"{path}:{i}: invalid bar row {row!r}") from exc
    bars.sort(key=lambda b: b.time)
    return bars


def merge_series(series: Dict[str, List[Bar]], primary: str) -> Iterator[MarketEvent]:
    """〔この関数がすること〕
    系列ごとの足を時刻順にマージします。同時刻では主系列を最後に流します
    （その時点の上位足がすべて揃ってから主系列の判定を行うため）。
    """
    names = [n for n in series if n != primary] + [primary]

    def _keyed(rank: int, name: str) -> Iterator[Tuple[datetime, int, int, str, Bar]]:
        for i, bar in enumerate(series[name]):
            yield bar.time, rank, i, name, bar

    streams = [_keyed(rank, name) for rank, name in enumerate(names) if name in series]
    for _, _, _, name, bar in heapq.merge(*streams):
        yield MarketEvent(name, bar)


def _parse_series(items: Sequence[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        name, sep, path = item.partition("=")
        if not sep or not name.strip() or not path.strip():
            raise ConfigError(f"--series expects NAME=CSV, got {item!r}")
        out[name.strip()] = path.strip()
    return out


# ─────────────────────────────── 戦略の組み立てと実行 ───────────────────────────────


def build_strategy(
    kind: str,
    config_path: str,
    *,
    venue: PaperVenue,
    initial_cash: float,
    training_dir: str,
    metrics: Optional[Metrics],
    decisions: Optional[DecisionLogger],
) -> BarStrategy:
    """〔この関数がすること〕 戦略種別と設定ファイルから戦略インスタンスを作ります。"""
    if kind == "breakout":
        return BreakoutStrategy(
            load_breakout_config(config_path),
            venue=venue,
            initial_cash=initial_cash,
            metrics=metrics,
            decisions=decisions,
        )
    if kind == "airange":
        return AIRangeStrategy(
            load_airange_config(config_path),
            venue=venue,
            initial_cash=initial_cash,
            training_dir=training_dir,
            metrics=metrics,
            decisions=decisions,
        )
    raise ConfigError(f"unknown strategy: {kind!r} (expected one of: {', '.join(STRATEGIES)})")


class ReplaySimulator:
    """〔このクラスがすること〕 1 戦略 + ペーパー執行先で、マージ済みの足イベントを再生します。"""

    def __init__(self, strategy: BarStrategy, venue: PaperVenue) -> None:
        self.strategy = strategy
        self.venue = venue
        self.events = 0

    def run(self, events: Iterator[MarketEvent]) -> None:
        primary = self.strategy.context.primary_series
        self.strategy.start()
        try:
            for event in events:
                if event.series == primary:
                    self.venue.process_bar(event.bar)
                self.strategy.on_market_event(event)
                self.events += 1
        finally:
            self.strategy.stop()

    def summary(self) -> Dict[str, Any]:
        ctx = self.strategy.context
        entries = [t for t in self.venue.trades if t.action.value.startswith("enter")]
        exits = [t for t in self.venue.trades if t.action.value.startswith("exit")]
        out: Dict[str, Any] = {
            "strategy": self.strategy.name,
            "events": self.events,
            "entries": len(entries),
            "exit_fills": len(exits),
            "realized_pnl": round(ctx.account.realized_pnl, 2),
            "equity": round(ctx.account.equity, 2),
            "open_quantity": ctx.position.quantity,
        }
        training = getattr(self.strategy, "training_logger", None)
        if training is not None:
            out["training_records"] = training.written
            out["training_failed"] = training.failed
        return out

    def print_summary(self) -> None:
        for k, v in self.summary().items():
            logger.info("%-16s %s", k, v)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """〔この関数がすること〕 CLI 引数を解釈します。"""

    p = argparse.ArgumentParser(description="bar replay with paper fills")
    p.add_argument("--strategy", required=True, choices=STRATEGIES, help="sample strategy to run")
    p.add_argument("--config", required=True, help="strategy config (TOML/YAML/JSON)")
    p.add_argument("--bars", required=True, help="primary series CSV (time,open,high,low,close)")
    p.add_argument(
        "--series",
        action="append",
        default=[],
        metavar="NAME=CSV",
        help="additional bar series, e.g. consolidation=bars_30m.csv (repeatable)",
    )
    p.add_argument("--log-level", default=None, help="console/file log level (default: LOG_LEVEL)")
    p.add_argument("--prom-port", type=int, default=None, help="expose /metrics on this port")
    p.add_argument("--decisions-file", default=None, help="append decision events as JSONL")
    p.add_argument("--initial-cash", type=float, default=None, help="account size for risk sizing")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """〔この関数がすること〕 リプレイを実行し、主要指標を表示します。"""

    args = parse_args(argv)
    settings = load_settings()
    level = args.log_level or settings.log_level
    setup_logger(args.strategy, console_level=level, file_level=level, log_root=settings.log_root)

    prom_port = args.prom_port if args.prom_port is not None else settings.prom_port
    decisions_file = args.decisions_file or settings.decisions_file
    initial_cash = args.initial_cash if args.initial_cash is not None else settings.initial_cash

    venue = PaperVenue()
    metrics = Metrics(prom_port, strategy=args.strategy)
    decisions = DecisionLogger(filepath=decisions_file)
    strategy = build_strategy(
        args.strategy,
        args.config,
        venue=venue,
        initial_cash=initial_cash,
        training_dir=settings.training_output_dir,
        metrics=metrics,
        decisions=decisions,
    )
    venue.on_fill = strategy.on_fill_event

    series = {strategy.context.primary_series: load_bars(args.bars)}
    for name, path in _parse_series(args.series).items():
        series[name] = load_bars(path)
    logger.info(
        "replaying %s: %s",
        args.strategy,
        ", ".join(f"{k}={len(v)} bars" for k, v in series.items()),
    )

    sim = ReplaySimulator(strategy, venue)
    sim.run(merge_series(series, strategy.context.primary_series))
    sim.print_summary()
    logging.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
