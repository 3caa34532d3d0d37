# 〔このモジュールがすること〕
# 設定ファイルの時刻/期間表記（"17:00", "03:30", "08:00:00"）を datetime 系へ変換し、
# タイムゾーン付きの「時刻」をローカル（足データの時刻系）へ移し替えます。

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from te_core.utils.config import ConfigError


def parse_clock(raw: Any) -> time:
    """〔この関数がすること〕 "HH:MM" / "HH:MM:SS" / time を time に変換します。"""
    if isinstance(raw, time):
        return raw
    text = str(raw).strip()
    try:
        return time.fromisoformat(text)
    except ValueError as exc:
        raise ConfigError(f"invalid clock time: {raw!r}") from exc


def parse_duration(raw: Any) -> timedelta:
    """〔この関数がすること〕
    "HH:MM" / "HH:MM:SS" / 秒数（int/float）/ timedelta を timedelta に変換します。
    """
    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return timedelta(seconds=float(raw))
    text = str(raw).strip()
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise ConfigError(f"invalid duration: {raw!r}")
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = float(parts[2]) if len(parts) == 3 else 0.0
    except ValueError as exc:
        raise ConfigError(f"invalid duration: {raw!r}") from exc
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def zone(name: str) -> ZoneInfo:
    """〔この関数がすること〕 IANA 名から ZoneInfo を返します（不正名は ConfigError）。"""
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"unknown time zone: {name!r}") from exc


@dataclass(frozen=True)
class ClockTime:
    """〔このクラスがすること〕 タイムゾーン付きの「一日の中の時刻」を表します。"""

    time: time
    tz: str = "UTC"

    @classmethod
    def parse(cls, raw: Any, tz: Any = "UTC") -> "ClockTime":
        """〔このメソッドがすること〕 設定値から ClockTime を作ります（tz は検証のみ）。"""
        tz_name = str(tz or "UTC")
        zone(tz_name)
        return cls(parse_clock(raw), tz_name)

    def on(self, day: date, local_tz: str = "UTC") -> datetime:
        """〔このメソッドがすること〕
        day の self.time（self.tz 基準）をローカル時刻系（naive）に変換して返します。
        """
        aware = datetime.combine(day, self.time, tzinfo=zone(self.tz))
        return aware.astimezone(zone(local_tz)).replace(tzinfo=None)


__all__ = ["ClockTime", "parse_clock", "parse_duration", "zone"]
