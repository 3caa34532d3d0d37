# 〔このモジュールがすること〕
# 足履歴の純関数としての指標（SMA / ATR）。計算できないときは NaN を返します。

from __future__ import annotations

import math
from typing import Sequence

from te_core.engine.models import Bar


def sma(values: Sequence[float], period: int) -> float:
    """〔この関数がすること〕 末尾 period 個の単純平均です（足りなければ NaN）。"""
    if period <= 0 or len(values) < period:
        return math.nan
    window = values[-period:]
    return sum(window) / period


def true_range(bar: Bar, prev_close: float) -> float:
    return max(bar.high - bar.low, abs(bar.high - prev_close), abs(bar.low - prev_close))


def atr(bars: Sequence[Bar], period: int) -> float:
    """〔この関数がすること〕
    古い順の足列から ATR（Wilder 平滑）を計算します。period + 1 本未満なら NaN です。
    """
    if period <= 0 or len(bars) < period + 1:
        return math.nan
    trs = [true_range(bars[i], bars[i - 1].close) for i in range(1, len(bars))]
    value = sum(trs[:period]) / period
    for tr in trs[period:]:
        value = (value * (period - 1) + tr) / period
    return value
