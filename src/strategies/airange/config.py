# 〔このモジュールがすること〕
# AI レンジ戦略の設定（dict など）を「属性アクセスできる dataclass」へ変換します。
# - coerce_airange_config(data): dict/オブジェクト → AIRangeConfig
# - load_airange_config(path): te_core.utils.config.load_config で読み込み → coerce に通す

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional

from te_core.engine.enter import EnterMode
from te_core.utils.config import enum_value, load_config, section, value
from te_core.utils.timeparse import ClockTime, parse_duration, zone

# ───────────── dataclass 定義（既定値はサンプル戦略の初期値） ─────────────


@dataclass
class StrategyCfg:
    """〔このクラスがすること〕 戦略名・モード・足系列名・ローカル時刻系を保持します。"""

    name: str = "airange"
    mode: EnterMode = EnterMode.LEARN
    local_tz: str = "UTC"
    primary_series: str = "default"
    consolidation_series: str = "consolidation"
    suffix_series: str = "suffix"
    volatility_series: str = "volatility"
    warmup_bars: int = 0


@dataclass
class ConsolidationCfg:
    """〔このクラスがすること〕 レンジの時間帯と、レンジ確定後にシグナルを出してよい期間です。"""

    start: ClockTime = ClockTime.parse("17:00", "America/New_York")
    end: ClockTime = ClockTime.parse("07:00", "Europe/London")
    valid_for: timedelta = timedelta(hours=2)


@dataclass
class FeatureCfg:
    """〔このクラスがすること〕 入力ベクトルに載せる足の本数・ボラティリティ期間・SMA 期間です。"""

    suffix_bars: int = 10
    volatility_bars: int = 10
    sma_period: int = 14


@dataclass
class LearnCfg:
    data_period: timedelta = timedelta(hours=3)
    output_dir: Optional[str] = None


@dataclass
class PlayerCfg:
    regression: bool = True
    table_path: str = "ai_output.csv"
    range_difference_to_open: float = 0.3


@dataclass
class ExitCfg:
    stop_loss_modifier: float = 1.0
    take_profit_enabled: bool = False
    take_profit_modifier: float = 1.0


@dataclass
class QuantityCfg:
    fixed_size: int = 100_000


@dataclass
class AIRangeConfig:
    """〔このクラスがすること〕 AI レンジ戦略の設定ルート（サブセクションを内包）です。"""

    strategy: StrategyCfg = field(default_factory=StrategyCfg)
    consolidation: ConsolidationCfg = field(default_factory=ConsolidationCfg)
    features: FeatureCfg = field(default_factory=FeatureCfg)
    learn: LearnCfg = field(default_factory=LearnCfg)
    player: PlayerCfg = field(default_factory=PlayerCfg)
    exit: ExitCfg = field(default_factory=ExitCfg)
    quantity: QuantityCfg = field(default_factory=QuantityCfg)


# ───────────── ヘルパー ─────────────


def _clock(sec: Any, key: str, default: ClockTime) -> ClockTime:
    return ClockTime.parse(value(sec, key, default.time), value(sec, f"{key}_tz", default.tz))


def _bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


# ───────────── 入口関数 ─────────────


def coerce_airange_config(data: Any) -> AIRangeConfig:
    """〔この関数がすること〕 dict 等の生設定を AIRangeConfig（属性アクセス可）へ変換します。"""

    st = section(data, "strategy")
    c = section(data, "consolidation")
    f = section(data, "features")
    lm = section(data, "learn")
    pl = section(data, "player")
    ex = section(data, "exit")
    q = section(data, "quantity")

    strategy = StrategyCfg(
        name=str(value(st, "name", StrategyCfg.name)),
        mode=enum_value(EnterMode, value(st, "mode", StrategyCfg.mode), field="strategy.mode"),
        local_tz=str(value(st, "local_tz", StrategyCfg.local_tz)),
        primary_series=str(value(st, "primary_series", StrategyCfg.primary_series)),
        consolidation_series=str(value(st, "consolidation_series", StrategyCfg.consolidation_series)),
        suffix_series=str(value(st, "suffix_series", StrategyCfg.suffix_series)),
        volatility_series=str(value(st, "volatility_series", StrategyCfg.volatility_series)),
        warmup_bars=int(value(st, "warmup_bars", StrategyCfg.warmup_bars)),
    )
    zone(strategy.local_tz)

    consolidation = ConsolidationCfg(
        start=_clock(c, "start", ConsolidationCfg.start),
        end=_clock(c, "end", ConsolidationCfg.end),
        valid_for=parse_duration(value(c, "valid_for", ConsolidationCfg.valid_for)),
    )
    features = FeatureCfg(
        suffix_bars=int(value(f, "suffix_bars", FeatureCfg.suffix_bars)),
        volatility_bars=int(value(f, "volatility_bars", FeatureCfg.volatility_bars)),
        sma_period=int(value(f, "sma_period", FeatureCfg.sma_period)),
    )
    output_dir = value(lm, "output_dir", None)
    learn = LearnCfg(
        data_period=parse_duration(value(lm, "data_period", LearnCfg.data_period)),
        output_dir=str(output_dir) if output_dir else None,
    )
    player = PlayerCfg(
        regression=_bool(value(pl, "regression", PlayerCfg.regression)),
        table_path=str(value(pl, "table_path", PlayerCfg.table_path)),
        range_difference_to_open=float(
            value(pl, "range_difference_to_open", PlayerCfg.range_difference_to_open)
        ),
    )
    exit_ = ExitCfg(
        stop_loss_modifier=float(value(ex, "stop_loss_modifier", ExitCfg.stop_loss_modifier)),
        take_profit_enabled=_bool(value(ex, "take_profit_enabled", ExitCfg.take_profit_enabled)),
        take_profit_modifier=float(value(ex, "take_profit_modifier", ExitCfg.take_profit_modifier)),
    )
    quantity = QuantityCfg(fixed_size=int(value(q, "fixed_size", QuantityCfg.fixed_size)))
    return AIRangeConfig(
        strategy=strategy,
        consolidation=consolidation,
        features=features,
        learn=learn,
        player=player,
        exit=exit_,
        quantity=quantity,
    )


def load_airange_config(path: str) -> AIRangeConfig:
    """〔この関数がすること〕 ファイルから設定を読み込み、AIRangeConfig に変換します。"""
    return coerce_airange_config(load_config(path))
