# 〔このモジュールがすること〕
# AI レンジ戦略の入力/出力ベクトルです。
# - RangeInputVector : レンジのメタ情報 + 直近 N 本の足（レンジ箱で正規化）+ SMA
# - RangeOutputVector: レンジ確定後の Long/Short 方向の最大到達幅（基準ボラティリティで正規化）
# 空ベクトル（EMPTY）は建玉予定時刻が datetime.min で、ヘッダも値も持ちません。

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, List, Optional, Sequence

from strategies.consolidation import ConsolidationRange
from te_core.engine.enter import InputVector, OutputVector
from te_core.engine.models import Bar

_BAR_FIELDS = ("t", "o", "h", "l", "c")
_META_HEADER = ["c.start", "c.end", "c.high", "c.low", "vol"]


class RangeInputVector(InputVector):
    """〔このクラスがすること〕
    レンジ（時間幅・価格幅）を 0..1 の箱として、直近足の時刻/OHLC と SMA を正規化します。
    生値ビューは先頭にレンジの開始/終了/高値/安値と基準ボラティリティを持ちます。
    """

    def __init__(
        self,
        intended_open_time: datetime,
        consolidation: Optional[ConsolidationRange] = None,
        bars: Sequence[Bar] = (),
        reference_volatility: float = math.nan,
        sma: float = math.nan,
    ) -> None:
        super().__init__(intended_open_time)
        self.consolidation = consolidation
        self.reference_volatility = reference_volatility
        self.sma = sma
        self._normalized_header: List[str] = []
        self._normalized: List[float] = []
        self._raw_header: List[str] = []
        self._raw: List[Any] = []
        if consolidation is not None:
            self._build(consolidation, list(bars))

    def _build(self, rng: ConsolidationRange, bars: List[Bar]) -> None:
        t0 = rng.start
        t_span = (rng.end - rng.start).total_seconds()
        v0 = rng.range_low
        v_span = rng.range_high - rng.range_low

        self._raw_header.extend(_META_HEADER)
        self._raw.extend([rng.start, rng.end, rng.range_high, rng.range_low, self.reference_volatility])

        for i, bar in enumerate(bars):
            names = [f"b[{i}].{f}" for f in _BAR_FIELDS]
            self._normalized_header.extend(names)
            self._raw_header.extend(names)
            self._normalized.extend(
                [
                    (bar.time - t0).total_seconds() / t_span,
                    (bar.open - v0) / v_span,
                    (bar.high - v0) / v_span,
                    (bar.low - v0) / v_span,
                    (bar.close - v0) / v_span,
                ]
            )
            self._raw.extend([bar.time, bar.open, bar.high, bar.low, bar.close])

        self._normalized_header.append("sma")
        self._raw_header.append("sma")
        self._normalized.append((self.sma - v0) / v_span)
        self._raw.append(self.sma)

    @property
    def normalized_header(self) -> List[str]:
        return list(self._normalized_header)

    @property
    def normalized_input(self) -> List[float]:
        return list(self._normalized)

    @property
    def raw_header(self) -> List[str]:
        return list(self._raw_header)

    @property
    def raw_input(self) -> List[Any]:
        return list(self._raw)


class RangeOutputVector(OutputVector):
    """〔このクラスがすること〕 Long/Short 方向の最大到達幅（ラベル）です。"""

    def __init__(
        self, signal_context: RangeInputVector, long_range: float, short_range: float
    ) -> None:
        super().__init__(signal_context)
        self.long_range = float(long_range)
        self.short_range = float(short_range)

    @property
    def signal_context(self) -> RangeInputVector:
        return self._signal_context  # type: ignore[return-value]

    @property
    def normalized_header(self) -> List[str]:
        return ["r.long", "r.short"]

    @property
    def normalized_output(self) -> List[float]:
        vol = self.signal_context.reference_volatility
        return [self.long_range / vol, self.short_range / vol]

    @property
    def raw_header(self) -> List[str]:
        return ["r.long", "r.short"]

    @property
    def raw_output(self) -> List[Any]:
        return [self.long_range, self.short_range]


EMPTY_INPUT = RangeInputVector(datetime.min)
EMPTY_OUTPUT = RangeOutputVector(EMPTY_INPUT, math.nan, math.nan)
