# 〔このモジュールがすること〕
# 複数の決済シグナルが独立に出したアドバイスを、毎ティック「矛盾のない決済計画」に統合します。
#   1) 既に決済済みの量（初期数量 − 残量）以下のアドバイスは捨てる
#   2) 成行のうち最大数量のものを 1 つだけ先頭で出し（実効量 = 要求 − 決済済み）、残量から差し引く
#   3) 価格付きは損切りプール/利確プールに分け、それぞれ同じ残量を上限に独立して割り当てる
#      （実際の相場ではどちらか一方しか約定しないため、両プールが全残量を確保してよい）
#   4) 出力順は 成行 → 損切り → 利確

from __future__ import annotations

from dataclasses import dataclass, field, replace
from itertools import chain
from typing import Any, Iterable, List, Sequence

from te_core.engine.context import StrategyContext
from te_core.engine.exits import ExitSignal
from te_core.engine.models import AdviceType, CloseAdvice, Direction
from te_core.utils.logger import get_logger

logger = get_logger("te_core.arbiter")


@dataclass(frozen=True)
class ClosePlan:
    """〔このクラスがすること〕 1 ティック分の決済計画と、成行適用後の残量です。"""

    advices: List[CloseAdvice] = field(default_factory=list)
    remaining_after_market: int = 0


def _allocate_pool(
    pool: Sequence[CloseAdvice], remaining: int, already_closed: int
) -> List[CloseAdvice]:
    out: List[CloseAdvice] = []
    pool_remaining = remaining
    for advice in pool:
        effective = advice.quantity - already_closed
        if effective <= 0:
            continue
        take = min(pool_remaining, effective)
        out.append(replace(advice, quantity=take))
        pool_remaining -= take
        if pool_remaining <= 0:
            break
    return out


def arbitrate(
    advices: Iterable[CloseAdvice],
    *,
    initial_quantity: int,
    remaining_quantity: int,
    direction: Direction,
) -> ClosePlan:
    """〔この関数がすること〕
    アドバイス列（登録順）から決済計画を作ります。入力のアドバイスは変更しません。
    """
    quantity_closed = initial_quantity - remaining_quantity
    candidates = [a for a in advices if a.quantity > quantity_closed]

    remaining = remaining_quantity
    planned: List[CloseAdvice] = []

    best_market = None
    for advice in candidates:
        # 同数量なら先に登録された方を残す
        if advice.is_market and (best_market is None or advice.quantity > best_market.quantity):
            best_market = advice

    market_take = 0
    if best_market is not None:
        # 発注量は「初期数量基準の要求 − 決済済み」、残量を超えない
        market_take = min(best_market.quantity - quantity_closed, remaining_quantity)
        planned.append(replace(best_market, quantity=market_take))
        remaining -= market_take
        if remaining <= 0:
            return ClosePlan(planned, remaining)

    already_closed = quantity_closed + market_take
    is_long = direction is Direction.LONG
    priced = [a for a in candidates if not a.is_market]

    # 損切り: 現在値に近い（先に触れる）順 = Long は高い順 / Short は低い順
    stops = sorted(
        (a for a in priced if a.advice_type is AdviceType.STOP_LOSS),
        key=lambda a: a.price * (-1 if is_long else 1),
    )
    # 利確: Long は低い順 / Short は高い順
    targets = sorted(
        (a for a in priced if a.advice_type is AdviceType.TAKE_PROFIT),
        key=lambda a: a.price * (1 if is_long else -1),
    )

    planned.extend(_allocate_pool(stops, remaining, already_closed))
    planned.extend(_allocate_pool(targets, remaining, already_closed))
    return ClosePlan(planned, remaining)


class ExitAdviceArbiter:
    """〔このクラスがすること〕
    登録された決済シグナル群を束ね、initialize/cleanup を全員へ配り、毎ティックの計画を返します。
    """

    def __init__(self, context: StrategyContext, signals: Iterable[ExitSignal]) -> None:
        self.context = context
        self._signals: List[ExitSignal] = list(signals)
        self.signal_context: Any = None
        self.signal: Any = None
        self.initial_quantity = 0

    @property
    def signals(self) -> List[ExitSignal]:
        return list(self._signals)

    def initialize(self, signal_context: Any, signal: Any, initial_quantity: int) -> None:
        """〔このメソッドがすること〕 建玉開始を全決済シグナルへ伝えます（唯一の初期化点）。"""
        self.signal_context = signal_context
        self.signal = signal
        self.initial_quantity = int(initial_quantity)
        for s in self._signals:
            s.initialize(signal_context, signal, initial_quantity)

    def cleanup(self) -> None:
        """〔このメソッドがすること〕 建玉終了を全決済シグナルへ伝え、取引スコープの状態を捨てます。"""
        for s in self._signals:
            s.cleanup()
        self.signal_context = None
        self.signal = None
        self.initial_quantity = 0

    def close_advices(self) -> List[CloseAdvice]:
        """〔このメソッドがすること〕 各シグナルのアドバイスを 1 回ずつ集め、決済計画を返します。"""
        position = self.context.position
        if self.initial_quantity <= 0 or not position.is_open:
            return []
        collected = list(chain.from_iterable(s.close_advices() for s in self._signals))
        plan = arbitrate(
            collected,
            initial_quantity=self.initial_quantity,
            remaining_quantity=abs(position.quantity),
            direction=position.direction,
        )
        logger.debug(
            "close plan: %d advice(s) from %d candidate(s), remaining after market=%d",
            len(plan.advices),
            len(collected),
            plan.remaining_after_market,
        )
        return plan.advices
