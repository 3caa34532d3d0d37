# 〔このモジュールがすること〕
# AI レンジ戦略のエントリー判定（学習モード / プレイヤーモード）です。
# - RangeLearnSignal : 予測期間の経過後、レンジ確定以降の足から Long/Short の最大到達幅をラベル化
# - RangePlayerSignal: 判定表 "time,long_range,short_range" を引き、幅の差が十分なら大きい側へ建玉

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from strategies.airange.vectors import RangeInputVector, RangeOutputVector
from te_core.engine.learn_mode import LearnModeEnterSignal
from te_core.engine.models import Direction, OpenRequest
from te_core.engine.player import PlayerEnterSignal
from te_core.utils.config import ConfigError


class RangeLearnSignal(LearnModeEnterSignal):
    """〔このクラスがすること〕 レンジの最終値を基準に、その後の高値/安値の最大到達幅を記録します。"""

    def translate_to_signal(self, vector: RangeInputVector) -> RangeOutputVector:
        rng = vector.consolidation
        range_long = 0.0
        range_short = 0.0
        for bar in self.context.primary_bars.since(rng.end):
            range_long = max(range_long, bar.high - rng.last)
            range_short = max(range_short, rng.last - bar.low)
        return RangeOutputVector(vector, range_long, range_short)


class RangePlayerSignal(PlayerEnterSignal):
    """〔このクラスがすること〕 記録済みの到達幅から建玉方向を決めます。"""

    def __init__(self, *args, range_difference_to_open: float, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.range_difference_to_open = float(range_difference_to_open)

    def csv_line_to_datetime(self, fields: Sequence[str]) -> datetime:
        text = fields[0].strip()
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise ConfigError(f"invalid time in player table: {text!r}") from exc

    def csv_line_to_output(
        self, vector: RangeInputVector, fields: Sequence[str]
    ) -> RangeOutputVector:
        try:
            return RangeOutputVector(vector, float(fields[1]), float(fields[2]))
        except (IndexError, ValueError) as exc:
            raise ConfigError(f"invalid player row for {vector}: {list(fields)!r}") from exc

    def translate_signal(self, output: RangeOutputVector) -> OpenRequest:
        context = output.signal_context
        difference = abs(output.long_range - output.short_range)
        widest = max(output.long_range, output.short_range)
        if widest <= 0.0 or difference / widest < self.range_difference_to_open:
            return OpenRequest(Direction.FLAT, context, output)
        if output.long_range > output.short_range:
            return OpenRequest(Direction.LONG, context, output)
        if output.long_range < output.short_range:
            return OpenRequest(Direction.SHORT, context, output)
        return OpenRequest(Direction.FLAT, context, output)
