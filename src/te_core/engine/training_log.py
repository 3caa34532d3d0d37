# 〔このモジュールがすること〕
# 学習用レコード（入力ベクトル + ラベル）を 2 本の CSV（normalized / raw）へ非同期に書き出します。
# - 判定スレッドは queue.Queue へ積むだけ（I/O しない）
# - 専用ワーカースレッドが FIFO で取り出して書き込む（空のときは get() でブロック）
# - ヘッダは最初のレコードのスキーマから 1 度だけ作り、データ行より先に書く
# - stop() は停止番兵を積み、ワーカーがキューを空にするまで待ってからファイルを閉じる

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, TextIO, Tuple

from te_core.engine.enter import InputVector, OutputVector
from te_core.utils.logger import get_logger

logger = get_logger("te_core.training_log")

_RAW_WIDTH = 20
_NORMALIZED_WIDTH = 9
_STOP = object()


@dataclass(frozen=True)
class TrainingRecord:
    """〔このクラスがすること〕 1 組の入力ベクトルとラベル（永続化の単位）です。"""

    input_vector: InputVector
    output_vector: OutputVector

    @classmethod
    def from_output(cls, output: OutputVector) -> "TrainingRecord":
        return cls(output.signal_context, output)

    @property
    def normalized_header(self) -> List[str]:
        return [*self.input_vector.normalized_header, *self.output_vector.normalized_header]

    @property
    def normalized_values(self) -> List[float]:
        return [*self.input_vector.normalized_input, *self.output_vector.normalized_output]

    @property
    def raw_header(self) -> List[str]:
        return [*self.input_vector.raw_header, *self.output_vector.raw_header]

    @property
    def raw_values(self) -> List[Any]:
        return [*self.input_vector.raw_input, *self.output_vector.raw_output]


def format_normalized(v: Any) -> str:
    """〔この関数がすること〕 数値は符号位置を揃えた小数 6 桁、それ以外は幅 9 で右寄せします。"""
    if isinstance(v, float):
        return f"{' ' if v >= 0 else ''}{v:.6f}"
    return str(v).rjust(_NORMALIZED_WIDTH)


def format_raw(v: Any) -> str:
    """〔この関数がすること〕 型ごとに整形し幅 20 で右寄せします（None は "(null)"）。"""
    if v is None:
        return "(null)"
    if isinstance(v, datetime):
        return v.strftime("%Y-%m-%dT%H:%M:%S").rjust(_RAW_WIDTH)
    if isinstance(v, float):
        return f"{v:.6f}".rjust(_RAW_WIDTH)
    return str(v).rjust(_RAW_WIDTH)


def _line(values: Sequence[Any], fmt: Callable[[Any], str]) -> str:
    return ",".join(fmt(v) for v in values) + "\n"


class TrainingDataLogger:
    """〔このクラスがすること〕
    単一プロデューサ/単一コンシューマのキューで TrainingRecord を受け取り、
    バックグラウンドスレッドで normalized_output_*.csv / raw_output_*.csv に書き込みます。
    """

    def __init__(
        self,
        output_dir: str | Path,
        *,
        clock: Callable[[], datetime] = datetime.now,
        on_written: Optional[Callable[[TrainingRecord], None]] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self._clock = clock
        self._on_written = on_written
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stopping = False
        self._run_stamp: Optional[str] = None
        self._normalized: Optional[TextIO] = None
        self._raw: Optional[TextIO] = None
        self.written = 0
        self.error: Optional[BaseException] = None

    # ───────────── 判定スレッド側 ─────────────

    def start(self) -> None:
        """〔このメソッドがすること〕 実行開始時刻を確定し、書き込みスレッドを起動します。"""
        if self._thread is not None:
            return
        self._run_stamp = self._clock().strftime("%Y_%m_%d_%H_%M_%S")
        self._thread = threading.Thread(
            target=self._worker, name="training-log", daemon=True
        )
        self._thread.start()
        logger.info("training logger started (dir=%s, run=%s)", self.output_dir, self._run_stamp)

    def save(self, record: TrainingRecord) -> None:
        """〔このメソッドがすること〕 レコードをキューへ積みます（ブロックしない）。"""
        if self._stopping:
            raise RuntimeError("training logger is stopped; record rejected")
        self._queue.put_nowait(record)

    def stop(self) -> None:
        """〔このメソッドがすること〕 停止番兵を積み、キューが空になるまで待ってからファイルを閉じます。"""
        if self._stopping:
            return
        if self._thread is None and not self._queue.empty():
            self.start()
        self._stopping = True
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join()
        self._close_files()
        logger.info("training logger stopped (%d record(s) written)", self.written)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def normalized_path(self) -> Optional[Path]:
        if self._run_stamp is None:
            return None
        return self.output_dir / f"normalized_output_{self._run_stamp}.csv"

    @property
    def raw_path(self) -> Optional[Path]:
        if self._run_stamp is None:
            return None
        return self.output_dir / f"raw_output_{self._run_stamp}.csv"

    # ───────────── 書き込みスレッド側 ─────────────

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if self.error is not None:
                # 書き込み失敗後は捨てる（再試行しない）
                continue
            try:
                self._write(item)
            except Exception as e:
                # 整形・書き込みのどちらで失敗してもスレッドは止めず、失敗として残す
                self.error = e
                logger.exception("training data write failed; further records are dropped")
                continue
            self.written += 1
            if self._on_written is not None:
                try:
                    self._on_written(item)
                except Exception:
                    logger.exception("on_written callback failed (record %d is on disk)", self.written)

    def _open_files(self, first: TrainingRecord) -> Tuple[TextIO, TextIO]:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._normalized = normalized = open(self.normalized_path, "a", encoding="utf-8", newline="")
        self._raw = raw = open(self.raw_path, "a", encoding="utf-8", newline="")
        normalized.write(_line(first.normalized_header, format_normalized))
        raw.write(_line(first.raw_header, format_raw))
        return normalized, raw

    def _write(self, record: TrainingRecord) -> None:
        # 先に両方の行を整形し、整形で失敗したときに片方だけ書かれた行を残さない
        normalized_line = _line(record.normalized_values, format_normalized)
        raw_line = _line(record.raw_values, format_raw)
        if self._normalized is None or self._raw is None:
            normalized, raw = self._open_files(record)
        else:
            normalized, raw = self._normalized, self._raw
        normalized.write(normalized_line)
        raw.write(raw_line)

    def _close_files(self) -> None:
        for f in (self._normalized, self._raw):
            if f is not None:
                try:
                    f.close()
                except OSError as e:
                    self.error = self.error or e
                    logger.exception("closing training data file failed")
        self._normalized = None
        self._raw = None
