# 〔このモジュールがすること〕
# エンジンと戦略のログ出力先を 1 か所で組み立てます。
# - コンソール: colorama でレベル別に色付け（1 本だけ）
# - 戦略別 CSV: logs/<strategy>/<strategy>.csv を日次ローテ。他戦略のロガーは流さない
# - error.csv : WARNING 以上を戦略ディレクトリへ追記
# レベルは引数 > 環境変数 LOG_LEVEL > INFO の順で決まります。

from __future__ import annotations

import csv
import io
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Final, Iterable, Optional

from colorama import Fore, Style, init as _color_init

_CONSOLE_FMT: Final = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
_DATE_FMT: Final = "%Y-%m-%d %H:%M:%S"
_BASE_FIELDS: Final = ("asctime", "levelname", "threadName")
_COLORS: Final = {
    "DEBUG": Fore.CYAN,
    "INFO": Fore.GREEN,
    "WARNING": Fore.YELLOW,
    "ERROR": Fore.RED,
    "CRITICAL": Fore.MAGENTA + Style.BRIGHT,
}
# どの戦略のファイルにも流す共通ロガー（エンジン本体とリプレイ）
_SHARED_LOGGERS: Final = ("te_core", "replay", "__main__", "strategies")
_ERROR_FILE: Final = "error.csv"

_LOGGER_CONFIGURED = False


class _ColorFormatter(logging.Formatter):
    """〔このクラスがすること〕 レベル名とメッセージをレベル色で囲んでコンソールへ出します。"""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = _COLORS.get(record.levelname)
        return f"{color}{text}{Style.RESET_ALL}" if color else text


class CsvLogFormatter(logging.Formatter):
    """〔このクラスがすること〕
    1 レコードを CSV の 1 行（カンマ・引用符は csv モジュールでエスケープ）にします。
    例外があれば行の後ろにトレースバックをそのまま続けます。
    """

    def __init__(self, fields: Iterable[str], datefmt: Optional[str] = _DATE_FMT) -> None:
        super().__init__(datefmt=datefmt)
        self.fields = tuple(fields)

    def _value(self, record: logging.LogRecord, field: str) -> str:
        if field == "asctime":
            return self.formatTime(record, self.datefmt)
        if field == "message":
            return record.getMessage()
        value = getattr(record, field, None)
        return "" if value is None else str(value)

    def format(self, record: logging.LogRecord) -> str:
        out = io.StringIO()
        csv.writer(out, lineterminator="").writerow(self._value(record, f) for f in self.fields)
        line = out.getvalue()
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def create_csv_formatter(*, include_logger_name: bool = True) -> CsvLogFormatter:
    """〔この関数がすること〕 時刻・レベル・スレッド名・（ロガー名）・本文の CSV フォーマッタを返します。"""
    extra = ("name", "message") if include_logger_name else ("message",)
    return CsvLogFormatter(_BASE_FIELDS + extra)


class _StrategyFilter(logging.Filter):
    """〔このクラスがすること〕 strategies.<対象> と共通ロガーだけを戦略別ファイルへ通します。"""

    def __init__(self, strategy_name: str) -> None:
        super().__init__()
        self.own = f"strategies.{strategy_name.lower()}"

    @staticmethod
    def _under(name: str, parent: str) -> bool:
        return name == parent or name.startswith(parent + ".")

    def filter(self, record: logging.LogRecord) -> bool:
        name = (record.name or "").lower()
        if name.startswith("strategies.") and not name.startswith("strategies.consolidation"):
            return self._under(name, self.own)
        return any(self._under(name, p) for p in _SHARED_LOGGERS)


def parse_level(value: str | int | None, default: int) -> int:
    """〔この関数がすること〕 "debug" / "20" / logging.INFO などをレベル値にします。未知の名前は ValueError。"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def _drop(root: logging.Logger, handler: logging.Handler) -> None:
    root.removeHandler(handler)
    handler.close()


def _install_strategy_file(root: logging.Logger, path: Path, level: int, strategy_name: Optional[str]) -> None:
    """〔この関数がすること〕 戦略別ローテーションファイルを 1 本に保ちます（別戦略のものは外す）。"""
    keep: Optional[logging.handlers.TimedRotatingFileHandler] = None
    for h in [h for h in root.handlers if isinstance(h, logging.handlers.TimedRotatingFileHandler)]:
        if h.baseFilename == str(path) and keep is None:
            keep = h
        else:
            _drop(root, h)
    if keep is None:
        keep = logging.handlers.TimedRotatingFileHandler(
            str(path), when="midnight", backupCount=7, encoding="utf-8"
        )
        root.addHandler(keep)
    keep.setLevel(level)
    keep.setFormatter(create_csv_formatter())
    for f in list(keep.filters):
        keep.removeFilter(f)
    if strategy_name:
        keep.addFilter(_StrategyFilter(strategy_name))


def _install_error_file(root: logging.Logger, path: Path) -> None:
    """〔この関数がすること〕 WARNING 以上を書く error.csv を戦略ディレクトリに 1 本だけ置きます。"""
    current = [
        h
        for h in root.handlers
        if type(h) is logging.FileHandler and Path(h.baseFilename).name == _ERROR_FILE
    ]
    for h in current:
        if h.baseFilename != str(path):
            _drop(root, h)
    if any(h.baseFilename == str(path) for h in root.handlers if isinstance(h, logging.FileHandler)):
        return
    eh = logging.FileHandler(str(path), encoding="utf-8")
    eh.setLevel(logging.WARNING)
    eh.setFormatter(create_csv_formatter())
    root.addHandler(eh)


def setup_logger(
    strategy_name: Optional[str] = None,
    *,
    console_level: str | int | None = None,
    file_level: str | int | None = None,
    log_root: Path | str = "logs",
) -> None:
    """〔この関数がすること〕
    ルートロガーへコンソール・戦略別 CSV・error.csv を取り付けます。何度呼んでも
    コンソールは 1 本のままで、戦略名を変えて呼ぶとファイル出力先だけが切り替わります。

    ```python
    setup_logger("breakout", log_root="logs")
    logging.getLogger("strategies.breakout").info("range fixed")
    ```
    """
    global _LOGGER_CONFIGURED

    env_level = parse_level(os.getenv("LOG_LEVEL"), logging.INFO)
    console = parse_level(console_level, env_level)
    to_file = parse_level(file_level, env_level)

    folder = strategy_name or "common"
    target_dir = Path(log_root).resolve() / folder
    target_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    _install_strategy_file(root, target_dir / f"{folder}.csv", to_file, strategy_name)
    _install_error_file(root, target_dir / _ERROR_FILE)

    if not _LOGGER_CONFIGURED:
        _color_init(strip=False)
        ch = logging.StreamHandler()
        ch.setFormatter(_ColorFormatter(_CONSOLE_FMT, datefmt=_DATE_FMT))
        root.addHandler(ch)
        _LOGGER_CONFIGURED = True
    for h in root.handlers:
        if isinstance(h.formatter, _ColorFormatter):
            h.setLevel(console)

    root.setLevel(min(console, to_file))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """〔この関数がすること〕 モジュール用ロガーを返します（出力先は setup_logger が決める）。"""
    return logging.getLogger(name)
