# 〔このモジュールがすること〕
# レンジブレイク戦略の発注数量を決めます。
# 想定損失幅は「直近の終値 − 建玉した場合の損切り水準」の絶対値で近似します
# （実際の建値は次の足の始値なので、あくまで概算）。

from __future__ import annotations

import math

from strategies.breakout.config import QuantityCfg
from strategies.breakout.exits import BreakoutStopLoss
from te_core.engine.context import StrategyContext
from te_core.engine.models import OpenRequest
from te_core.engine.quantity import QuantityAdvisor, build_quantity_advisor


def potential_loss_distance(
    context: StrategyContext, stop_loss: BreakoutStopLoss, open_request: OpenRequest
) -> float:
    """〔この関数がすること〕 建玉要求に対する想定損失幅を返します（算出不能なら NaN）。"""
    last = context.primary_bars.last
    if last is None or open_request.context is None:
        return math.nan
    level = stop_loss.stop_level(open_request.direction, open_request.context.consolidation)
    if level is None:
        return math.nan
    return abs(last.close - level)


def create_breakout_quantity_advisor(
    context: StrategyContext, config: QuantityCfg, stop_loss: BreakoutStopLoss
) -> QuantityAdvisor:
    return build_quantity_advisor(
        config.risk_type,
        fixed_size=config.fixed_size,
        fixed_loss=config.fixed_loss,
        percentage_loss=config.percentage_loss,
        context=context,
        loss_distance=lambda request: potential_loss_distance(context, stop_loss, request),
    )
