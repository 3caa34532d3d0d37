# 〔このモジュールがすること〕 テスト共通のフィクスチャ（足の生成・共有ホスト）を提供します。
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest

from te_core.engine.context import StrategyContext
from te_core.engine.models import Bar

T0 = datetime(2024, 1, 2, 0, 0)


@pytest.fixture
def make_bar() -> Callable[..., Bar]:
    """〔このフィクスチャがすること〕 T0 からの分数と OHLC で Bar を作る関数を返します。"""

    def _make(minutes: float, o: float, h: float, l: float, c: float) -> Bar:
        return Bar(T0 + timedelta(minutes=minutes), o, h, l, c)

    return _make


@pytest.fixture
def context() -> StrategyContext:
    """〔このフィクスチャがすること〕 主系列 "default" の空のホストを返します。"""
    return StrategyContext(initial_cash=10_000.0)
