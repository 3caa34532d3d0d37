from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from strategies.breakout.config import BreakEvenCfg, TakeProfitTier, coerce_breakout_config
from strategies.breakout.enter import BreakoutContext, BreakoutEnterSignal, BreakoutSignal
from strategies.breakout.exits import (
    BreakEven,
    BreakoutStopLoss,
    BreakoutTrailingStop,
    TakeProfitLevel,
    TimeExit,
)
from strategies.breakout.quantity import potential_loss_distance
from strategies.consolidation import ConsolidationRange, ConsolidationTracker
from te_core.engine.context import PositionState, StrategyContext
from te_core.engine.models import Bar, Direction, MarketEvent, OpenRequest
from te_core.utils.timeparse import ClockTime

RANGE = ConsolidationRange(
    date=date(2024, 1, 2),
    start=datetime(2024, 1, 1, 22, 0),
    end=datetime(2024, 1, 2, 7, 0),
    range_high=1.1050,
    range_low=1.1000,
    last=1.1030,
)
CTX = BreakoutContext(RANGE)


def _cfg() -> dict:
    """〔この関数がすること〕 UTC 22:00〜07:00 のレンジ、締め切り 11:00 の設定辞書を返します。"""
    return {
        "session": {
            "consolidation_start": "22:00",
            "consolidation_start_tz": "UTC",
            "consolidation_end": "07:00",
            "consolidation_end_tz": "UTC",
            "max_enter": "11:00",
            "max_enter_tz": "UTC",
        }
    }


def _open(ctx: StrategyContext, direction: Direction, qty: int, price: float, at: datetime) -> None:
    """〔この関数がすること〕 コントローラの代わりに建玉状態と建玉時刻を設定します。"""
    ctx.position = PositionState(direction, qty, price)
    ctx.last_position_open_time = at


def _feed(ctx: StrategyContext, series: str, t: datetime, o: float, h: float, l: float, c: float) -> None:
    ctx.advance(MarketEvent(series, Bar(t, o, h, l, c)))


# ───────────── 文脈とエントリー判定 ─────────────


def test_context_equality_is_by_range_date() -> None:
    """〔このテストがすること〕 同じ日付のレンジなら価格が違っても同じ文脈として扱われることを確認します。"""
    other = ConsolidationRange(RANGE.date, RANGE.start, RANGE.end, 2.0, 1.0, 1.5)
    assert BreakoutContext(other) == CTX and hash(BreakoutContext(other)) == hash(CTX)
    assert BreakoutContext(None) != CTX
    assert str(CTX) == "2024-01-02" and str(BreakoutContext(None)) == ""


def _enter_signal():
    cfg = coerce_breakout_config(_cfg())
    ctx = StrategyContext()
    tracker = ConsolidationTracker(
        ctx,
        series="consolidation",
        start=cfg.session.consolidation_start,
        end=cfg.session.consolidation_end,
    )
    _feed(ctx, "consolidation", datetime(2024, 1, 2, 3, 0), 1.1020, 1.1050, 1.1000, 1.1030)
    _feed(ctx, "consolidation", datetime(2024, 1, 2, 7, 0), 1.1030, 1.1040, 1.1010, 1.1030)
    assert tracker.current_range() == RANGE
    return BreakoutEnterSignal(ctx, cfg, tracker), ctx


def test_breakout_above_range_goes_long() -> None:
    signal, ctx = _enter_signal()
    assert signal.current_open_request().direction is Direction.FLAT  # レンジ確定のみ
    _feed(ctx, "default", datetime(2024, 1, 2, 7, 5), 1.1040, 1.1060, 1.1035, 1.1055)
    request = signal.current_open_request()
    assert request.direction is Direction.LONG
    assert request.context == CTX
    assert request.signal == BreakoutSignal(request.context, Direction.LONG)


def test_breakout_below_range_goes_short() -> None:
    signal, ctx = _enter_signal()
    _feed(ctx, "default", datetime(2024, 1, 2, 7, 5), 1.1010, 1.1015, 1.0990, 1.0995)
    assert signal.current_open_request().direction is Direction.SHORT


def test_no_entry_after_max_enter_or_second_trade() -> None:
    """〔このテストがすること〕 締め切り後、または当日すでに建玉していればエントリーしないことを確認します。"""
    signal, ctx = _enter_signal()
    _feed(ctx, "default", datetime(2024, 1, 2, 11, 5), 1.1040, 1.1060, 1.1035, 1.1055)
    assert signal.current_open_request().direction is Direction.FLAT

    signal, ctx = _enter_signal()
    ctx.last_position_open_time = datetime(2024, 1, 2, 7, 30)
    _feed(ctx, "default", datetime(2024, 1, 2, 8, 0), 1.1040, 1.1060, 1.1035, 1.1055)
    assert signal.current_open_request().direction is Direction.FLAT


# ───────────── 決済シグナル ─────────────


def test_stop_loss_opposite_side_of_range(context) -> None:
    sl = BreakoutStopLoss(context, "Stop Loss", 0.0002)
    _open(context, Direction.LONG, 100, 1.1052, datetime(2024, 1, 2, 7, 5))
    sl.initialize(CTX, BreakoutSignal(CTX, Direction.LONG), 100)
    advice = list(sl.close_advices())
    assert len(advice) == 1 and math.isclose(advice[0].price, 1.0998)
    assert advice[0].quantity == 100

    sl.cleanup()
    assert list(sl.close_advices()) == []
    assert math.isclose(sl.stop_level(Direction.SHORT, RANGE), 1.1052)


def test_time_exit_after_max_position_time(context, make_bar) -> None:
    exit_ = TimeExit(context, "Time Exit", timedelta(hours=1))
    _open(context, Direction.LONG, 10, 100.0, make_bar(0, 0, 0, 0, 0).time)
    exit_.initialize(CTX, None, 10)
    context.advance(MarketEvent("default", make_bar(59, 1, 1, 1, 1)))
    assert list(exit_.close_advices()) == []
    context.advance(MarketEvent("default", make_bar(60, 1, 1, 1, 1)))
    advice = list(exit_.close_advices())
    assert advice[0].is_market and advice[0].quantity == 10


def test_take_profit_tiers_size_and_price(context) -> None:
    """〔このテストがすること〕 利確段の数量は初期建玉の %（切り捨て）、価格はレンジ幅の % 先になることを確認します。"""
    _open(context, Direction.SHORT, 100, 1.0990, datetime(2024, 1, 2, 7, 5))
    tp = TakeProfitLevel(context, "Take Profit 1", TakeProfitTier(True, 33, 80))
    tp.initialize(CTX, BreakoutSignal(CTX, Direction.SHORT), 100)
    advice = list(tp.close_advices())[0]
    assert advice.quantity == 33
    assert math.isclose(advice.price, 1.0990 - 0.0050 * 0.8)

    tiny = TakeProfitLevel(context, "Take Profit 2", TakeProfitTier(True, 33, 80))
    tiny.initialize(CTX, BreakoutSignal(CTX, Direction.SHORT), 2)
    assert list(tiny.close_advices()) == [], "数量 0 の利確段がアドバイスを出しました"


def test_trailing_stop_activates_and_ratchets(context, make_bar) -> None:
    """〔このテストがすること〕 含み益が閾値に達してから追従し、ストップは有利な方向にしか動かないことを確認します。"""
    trail = BreakoutTrailingStop(context, "Trailing Stop Loss", 0.0010, 80.0)
    opened = make_bar(0, 0, 0, 0, 0).time
    _open(context, Direction.LONG, 10, 1.1050, opened)
    trail.initialize(CTX, BreakoutSignal(CTX, Direction.LONG), 10)
    # 発動距離 = 0.0050 * 0.8 = 0.0040

    context.advance(MarketEvent("default", make_bar(5, 1.1050, 1.1080, 1.1045, 1.1070)))
    assert list(trail.close_advices()) == []

    context.advance(MarketEvent("default", make_bar(10, 1.1070, 1.1095, 1.1065, 1.1090)))
    first = list(trail.close_advices())[0].price
    assert math.isclose(first, 1.1055)

    context.advance(MarketEvent("default", make_bar(15, 1.1090, 1.1092, 1.1050, 1.1060)))
    assert math.isclose(list(trail.close_advices())[0].price, first), "ストップが不利な方向へ動きました"

    context.advance(MarketEvent("default", make_bar(20, 1.1060, 1.1110, 1.1080, 1.1100)))
    assert math.isclose(list(trail.close_advices())[0].price, 1.1070)


def test_break_even_after_activation_time(context) -> None:
    """〔このテストがすること〕 指定時刻前は出さず、以降に含み益が閾値以上なら建値 + オフセットを出し続けることを確認します。"""
    cfg = BreakEvenCfg(True, ClockTime.parse("12:00"), 0.0010, 0.0001)
    be = BreakEven(context, "Break Even", cfg)
    _open(context, Direction.LONG, 10, 1.1050, datetime(2024, 1, 2, 7, 5))
    be.initialize(CTX, BreakoutSignal(CTX, Direction.LONG), 10)

    _feed(context, "default", datetime(2024, 1, 2, 11, 55), 1.1070, 1.1080, 1.1065, 1.1075)
    assert list(be.close_advices()) == []

    _feed(context, "default", datetime(2024, 1, 2, 12, 0), 1.1050, 1.1058, 1.1052, 1.1055)
    assert list(be.close_advices()) == [], "含み益不足で発動しました"

    _feed(context, "default", datetime(2024, 1, 2, 12, 5), 1.1055, 1.1075, 1.1055, 1.1070)
    advice = list(be.close_advices())[0]
    assert math.isclose(advice.price, 1.1051)

    _feed(context, "default", datetime(2024, 1, 2, 12, 10), 1.1070, 1.1072, 1.1052, 1.1053)
    assert math.isclose(list(be.close_advices())[0].price, 1.1051)


def test_potential_loss_distance(context) -> None:
    sl = BreakoutStopLoss(context, "Stop Loss", 0.0002)
    req = OpenRequest(Direction.LONG, CTX, BreakoutSignal(CTX, Direction.LONG))
    assert math.isnan(potential_loss_distance(context, sl, req))

    _feed(context, "default", datetime(2024, 1, 2, 7, 5), 1.1040, 1.1060, 1.1035, 1.1055)
    assert math.isclose(potential_loss_distance(context, sl, req), 1.1055 - 1.0998)
    assert math.isnan(potential_loss_distance(context, sl, OpenRequest(Direction.FLAT, None, None)))
