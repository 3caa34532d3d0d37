# 〔このモジュールがすること〕
# プレイヤーモードのエントリー判定です。事前計算された判定表（時刻 → CSV 行）を 1 度だけ遅延読み込みし、
# 入力ベクトルの建玉予定時刻で引きます。見つからなければニュートラル、見つかれば
# 戦略固有の変換で建玉方向を決めます。オンライン推論は未実装です。

from __future__ import annotations

import csv
from abc import abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from te_core.engine.context import StrategyContext
from te_core.engine.enter import (
    AIEnterSignal,
    EnterMode,
    InputVector,
    InputVectorExtractor,
    OutputVector,
)
from te_core.engine.models import OpenRequest
from te_core.utils.config import ConfigError
from te_core.utils.logger import get_logger

logger = get_logger("te_core.player")


class PlayerEnterSignal(AIEnterSignal):
    """〔このクラスがすること〕
    回帰（CSV 再生）モードで判定表を引き、記録済みラベルを建玉要求へ変換します。
    """

    def __init__(
        self,
        context: StrategyContext,
        extractor: InputVectorExtractor,
        *,
        table_path: str | Path,
        empty_context: InputVector,
        empty_signal: Optional[OutputVector],
        regression: bool = True,
    ) -> None:
        super().__init__(
            context, extractor, empty_context=empty_context, empty_signal=empty_signal
        )
        self.table_path = Path(table_path)
        self.regression = regression
        self._table: Optional[Dict[datetime, List[str]]] = None

    @property
    def mode(self) -> EnterMode:
        return EnterMode.PLAYER

    @property
    def table(self) -> Dict[datetime, List[str]]:
        if self._table is None:
            self._table = self.load_table()
        return self._table

    def load_table(self) -> Dict[datetime, List[str]]:
        """〔このメソッドがすること〕
        CSV を読み込み（先頭行はヘッダとして捨て、空行は無視）、時刻をキーにした辞書を返します。
        """
        table: Dict[datetime, List[str]] = {}
        try:
            with self.table_path.open("r", encoding="utf-8", newline="") as f:
                rows = list(csv.reader(f))
        except FileNotFoundError as exc:
            raise ConfigError(f"player table not found: {self.table_path}") from exc

        for row in rows[1:]:
            if not any(cell.strip() for cell in row):
                continue
            key = self.csv_line_to_datetime(row)
            if key == datetime.min:
                continue
            if key in table:
                raise ConfigError(f"duplicate player row for {key.isoformat()} in {self.table_path}")
            table[key] = row
        logger.info("player table loaded: %d row(s) from %s", len(table), self.table_path)
        return table

    def output_for(self, vector: InputVector) -> Optional[OutputVector]:
        if not self.regression:
            raise NotImplementedError("online mode has not been implemented")
        row = self.table.get(vector.intended_open_time)
        if row is None:
            return None
        return self.csv_line_to_output(vector, row)

    def translate_to_open_request(self, vector: InputVector) -> OpenRequest:
        output = self.output_for(vector)
        if output is None:
            return self.neutral()
        return self.translate_signal(output)

    @abstractmethod
    def csv_line_to_datetime(self, fields: Sequence[str]) -> datetime:
        ...

    @abstractmethod
    def csv_line_to_output(self, vector: InputVector, fields: Sequence[str]) -> OutputVector:
        ...

    @abstractmethod
    def translate_signal(self, output: OutputVector) -> OpenRequest:
        """〔このメソッドがすること〕 記録済みラベルを具体的な建玉方向へ変換します。"""
