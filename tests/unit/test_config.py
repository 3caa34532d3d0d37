from __future__ import annotations

from datetime import time, timedelta
from pathlib import Path

import pytest

from strategies.airange.config import coerce_airange_config, load_airange_config
from strategies.breakout.config import coerce_breakout_config, load_breakout_config
from te_core.config import load_settings
from te_core.engine.enter import EnterMode
from te_core.engine.quantity import TradeRiskType
from te_core.utils.config import ConfigError, load_config

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


def _breakout_cfg() -> dict:
    """〔この関数がすること〕 レンジブレイク設定の一部だけを上書きした辞書を返します。"""
    return {
        "strategy": {"name": "eurusd", "local_tz": "Europe/Berlin", "warmup_bars": "5"},
        "session": {"max_enter": "10:30", "max_enter_tz": "Europe/London"},
        "quantity": {"risk_type": "PERCENTAGE_LOSS", "percentage_loss": 2},
        "time_stop": {"enabled": "off", "max_position_time": "04:30"},
        "take_profit": {"tiers": [{"position_percentage": 50, "distance": 90}]},
    }


def test_load_config_reads_toml_yaml_json(tmp_path) -> None:
    """〔このテストがすること〕 TOML/YAML/JSON のどれでも同じ dict になることを確認します。"""
    (tmp_path / "a.toml").write_text('[strategy]\nname = "x"\n', encoding="utf-8")
    (tmp_path / "a.yaml").write_text("strategy:\n  name: x\n", encoding="utf-8")
    (tmp_path / "a.json").write_text('{"strategy": {"name": "x"}}', encoding="utf-8")
    for name in ("a.toml", "a.yaml", "a.json"):
        assert load_config(tmp_path / name) == {"strategy": {"name": "x"}}


def test_load_config_rejects_bad_input(tmp_path) -> None:
    (tmp_path / "bad.toml").write_text("[strategy\n", encoding="utf-8")
    (tmp_path / "list.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
    (tmp_path / "a.ini").write_text("", encoding="utf-8")
    for name in ("bad.toml", "list.yaml", "a.ini", "missing.toml"):
        with pytest.raises(ConfigError):
            load_config(tmp_path / name)


def test_breakout_defaults() -> None:
    """〔このテストがすること〕 空の設定でもサンプル戦略の既定値で組み立てられることを確認します。"""
    cfg = coerce_breakout_config({})
    assert cfg.strategy.name == "breakout"
    assert cfg.session.consolidation_start.time == time(17, 0)
    assert cfg.session.consolidation_start.tz == "America/New_York"
    assert cfg.quantity.risk_type is TradeRiskType.FIXED_LOSS
    assert [(t.position_percentage, t.distance) for t in cfg.take_profit] == [(33, 80), (66, 140), (100, 180)]
    assert cfg.time_stop.max_position_time == timedelta(hours=8)


def test_breakout_overrides() -> None:
    """〔このテストがすること〕 文字列の数値/真偽値/時刻が型変換されて反映されることを確認します。"""
    cfg = coerce_breakout_config(_breakout_cfg())
    assert cfg.strategy.name == "eurusd" and cfg.strategy.warmup_bars == 5
    assert cfg.session.max_enter.time == time(10, 30)
    assert cfg.quantity.risk_type is TradeRiskType.PERCENTAGE_LOSS
    assert cfg.quantity.percentage_loss == 2.0
    assert cfg.time_stop.enabled is False
    assert cfg.time_stop.max_position_time == timedelta(hours=4, minutes=30)
    assert len(cfg.take_profit) == 1 and cfg.take_profit[0].enabled


@pytest.mark.parametrize(
    "patch",
    [
        {"quantity": {"risk_type": "martingale"}},
        {"strategy": {"local_tz": "Mars/Olympus"}},
        {"session": {"max_enter": "25:99"}},
        {"take_profit": {"tiers": "all"}},
    ],
)
def test_breakout_invalid_values_raise(patch) -> None:
    """〔このテストがすること〕 不正な種別・時刻帯・時刻・段階利確は ConfigError になることを確認します。"""
    with pytest.raises(ConfigError):
        coerce_breakout_config(patch)


def test_airange_defaults_and_mode() -> None:
    cfg = coerce_airange_config({"strategy": {"mode": "Player"}, "learn": {"data_period": 5400}})
    assert cfg.strategy.mode is EnterMode.PLAYER
    assert cfg.learn.data_period == timedelta(minutes=90)
    assert cfg.features.sma_period == 14
    assert cfg.player.range_difference_to_open == 0.3
    assert cfg.exit.take_profit_enabled is False


def test_airange_bad_mode_raises() -> None:
    with pytest.raises(ConfigError):
        coerce_airange_config({"strategy": {"mode": "online"}})


def test_shipped_configs_load() -> None:
    """〔このテストがすること〕 同梱のサンプル設定ファイルがそのまま読み込めることを確認します。"""
    breakout = load_breakout_config(str(CONFIG_DIR / "breakout.toml"))
    airange = load_airange_config(str(CONFIG_DIR / "airange.toml"))
    assert breakout.strategy.name == "breakout"
    assert len(breakout.take_profit) == 3
    assert airange.strategy.name == "airange"


def test_settings_from_env(monkeypatch) -> None:
    """〔このテストがすること〕 環境変数から Settings が作られ、空値は既定値になることを確認します。"""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PROM_PORT", "off")
    monkeypatch.setenv("INITIAL_CASH", "250_000")
    monkeypatch.setenv("DECISIONS_FILE", " ")
    settings = load_settings()
    assert settings.log_level == "DEBUG"
    assert settings.prom_port is None
    assert settings.initial_cash == 250_000.0
    assert settings.decisions_file is None
