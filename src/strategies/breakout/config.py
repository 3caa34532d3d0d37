# 〔このモジュールがすること〕
# レンジブレイク戦略の設定（dict など）を「属性アクセスできる dataclass」へ変換します。
# - coerce_breakout_config(data): dict/オブジェクト → BreakoutConfig
# - load_breakout_config(path): te_core.utils.config.load_config で読み込み → coerce に通す

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, List

from te_core.engine.quantity import TradeRiskType
from te_core.utils.config import ConfigError, enum_value, load_config, section, value
from te_core.utils.timeparse import ClockTime, parse_duration, zone

# ───────────── dataclass 定義（既定値はサンプル戦略の初期値） ─────────────


@dataclass
class StrategyCfg:
    """〔このクラスがすること〕 戦略名・足系列名・ローカル時刻系を保持します。"""

    name: str = "breakout"
    local_tz: str = "UTC"
    primary_series: str = "default"
    consolidation_series: str = "consolidation"
    warmup_bars: int = 0


@dataclass
class SessionCfg:
    """〔このクラスがすること〕 レンジ計算の時間帯と、エントリー締め切り時刻を保持します。"""

    consolidation_start: ClockTime = ClockTime.parse("17:00", "America/New_York")
    consolidation_end: ClockTime = ClockTime.parse("07:00", "Europe/London")
    max_enter: ClockTime = ClockTime.parse("11:00", "Europe/London")


@dataclass
class QuantityCfg:
    """〔このクラスがすること〕 発注数量の決め方（リスク種別）を保持します。"""

    risk_type: TradeRiskType = TradeRiskType.FIXED_LOSS
    fixed_size: int = 100_000
    fixed_loss: float = 500.0
    percentage_loss: float = 5.0


@dataclass
class TimeStopCfg:
    enabled: bool = True
    max_position_time: timedelta = timedelta(hours=8)


@dataclass
class StopLossCfg:
    fixed_offset: float = 0.0002


@dataclass
class TakeProfitTier:
    """〔このクラスがすること〕 段階利確 1 段分（建玉の何 % を、レンジ幅の何 % 先で）です。"""

    enabled: bool = True
    position_percentage: int = 100
    distance: int = 100


def _default_tiers() -> List[TakeProfitTier]:
    return [
        TakeProfitTier(True, 33, 80),
        TakeProfitTier(True, 66, 140),
        TakeProfitTier(True, 100, 180),
    ]


@dataclass
class TrailingCfg:
    enabled: bool = True
    distance: float = 0.0020
    activation_percentage: float = 80.0


@dataclass
class BreakEvenCfg:
    enabled: bool = True
    activation_time: ClockTime = ClockTime.parse("12:00", "Europe/London")
    activation_profit: float = 0.001
    offset: float = 0.0001


@dataclass
class BreakoutConfig:
    """〔このクラスがすること〕 レンジブレイク戦略の設定ルート（サブセクションを内包）です。"""

    strategy: StrategyCfg = field(default_factory=StrategyCfg)
    session: SessionCfg = field(default_factory=SessionCfg)
    quantity: QuantityCfg = field(default_factory=QuantityCfg)
    time_stop: TimeStopCfg = field(default_factory=TimeStopCfg)
    stop_loss: StopLossCfg = field(default_factory=StopLossCfg)
    take_profit: List[TakeProfitTier] = field(default_factory=_default_tiers)
    trailing: TrailingCfg = field(default_factory=TrailingCfg)
    break_even: BreakEvenCfg = field(default_factory=BreakEvenCfg)


# ───────────── ヘルパー ─────────────


def _clock(sec: Any, key: str, default: ClockTime) -> ClockTime:
    """〔この関数がすること〕 "<key>" と "<key>_tz" の組から ClockTime を作ります。"""
    return ClockTime.parse(value(sec, key, default.time), value(sec, f"{key}_tz", default.tz))


def _bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


def _tiers(raw: Any) -> List[TakeProfitTier]:
    if raw is None or raw == {}:
        return _default_tiers()
    items = value(raw, "tiers", None) if not isinstance(raw, list) else raw
    if items is None:
        return _default_tiers()
    if not isinstance(items, list):
        raise ConfigError("take_profit.tiers must be a list")
    return [
        TakeProfitTier(
            enabled=_bool(value(t, "enabled", True)),
            position_percentage=int(value(t, "position_percentage", 100)),
            distance=int(value(t, "distance", 100)),
        )
        for t in items
    ]


# ───────────── 入口関数 ─────────────


def coerce_breakout_config(data: Any) -> BreakoutConfig:
    """〔この関数がすること〕 dict 等の生設定を BreakoutConfig（属性アクセス可）へ変換します。"""

    st = section(data, "strategy")
    ss = section(data, "session")
    q = section(data, "quantity")
    ts = section(data, "time_stop")
    sl = section(data, "stop_loss")
    tr = section(data, "trailing")
    be = section(data, "break_even")

    strategy = StrategyCfg(
        name=str(value(st, "name", StrategyCfg.name)),
        local_tz=str(value(st, "local_tz", StrategyCfg.local_tz)),
        primary_series=str(value(st, "primary_series", StrategyCfg.primary_series)),
        consolidation_series=str(value(st, "consolidation_series", StrategyCfg.consolidation_series)),
        warmup_bars=int(value(st, "warmup_bars", StrategyCfg.warmup_bars)),
    )
    zone(strategy.local_tz)

    session = SessionCfg(
        consolidation_start=_clock(ss, "consolidation_start", SessionCfg.consolidation_start),
        consolidation_end=_clock(ss, "consolidation_end", SessionCfg.consolidation_end),
        max_enter=_clock(ss, "max_enter", SessionCfg.max_enter),
    )
    quantity = QuantityCfg(
        risk_type=enum_value(TradeRiskType, value(q, "risk_type", QuantityCfg.risk_type), field="quantity.risk_type"),
        fixed_size=int(value(q, "fixed_size", QuantityCfg.fixed_size)),
        fixed_loss=float(value(q, "fixed_loss", QuantityCfg.fixed_loss)),
        percentage_loss=float(value(q, "percentage_loss", QuantityCfg.percentage_loss)),
    )
    time_stop = TimeStopCfg(
        enabled=_bool(value(ts, "enabled", TimeStopCfg.enabled)),
        max_position_time=parse_duration(value(ts, "max_position_time", TimeStopCfg.max_position_time)),
    )
    stop_loss = StopLossCfg(fixed_offset=float(value(sl, "fixed_offset", StopLossCfg.fixed_offset)))
    trailing = TrailingCfg(
        enabled=_bool(value(tr, "enabled", TrailingCfg.enabled)),
        distance=float(value(tr, "distance", TrailingCfg.distance)),
        activation_percentage=float(value(tr, "activation_percentage", TrailingCfg.activation_percentage)),
    )
    break_even = BreakEvenCfg(
        enabled=_bool(value(be, "enabled", BreakEvenCfg.enabled)),
        activation_time=_clock(be, "activation_time", BreakEvenCfg.activation_time),
        activation_profit=float(value(be, "activation_profit", BreakEvenCfg.activation_profit)),
        offset=float(value(be, "offset", BreakEvenCfg.offset)),
    )
    return BreakoutConfig(
        strategy=strategy,
        session=session,
        quantity=quantity,
        time_stop=time_stop,
        stop_loss=stop_loss,
        take_profit=_tiers(section(data, "take_profit")),
        trailing=trailing,
        break_even=break_even,
    )


def load_breakout_config(path: str) -> BreakoutConfig:
    """〔この関数がすること〕 ファイルから設定を読み込み、BreakoutConfig に変換します。"""
    return coerce_breakout_config(load_config(path))
