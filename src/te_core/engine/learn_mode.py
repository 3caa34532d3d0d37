# 〔このモジュールがすること〕
# 学習モードのエントリー判定です。実際には建玉せず、入力ベクトルを観察してラベル付けするだけです。
#   - 建玉予定時刻が直前の受理時刻より「厳密に後」の入力だけを FIFO へ積む（重複/巻き戻りは捨てる）
#   - 毎ティック、先頭の予定時刻 + 予測期間 <= 現在時刻 の間は取り出してラベルを計算し、
#     TrainingRecord として非同期ロガーへ渡す
#   - 常にニュートラル（Flat）を返す

from __future__ import annotations

from abc import abstractmethod
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Optional

from te_core.engine.context import StrategyContext
from te_core.engine.enter import (
    AIEnterSignal,
    EnterMode,
    InputVector,
    InputVectorExtractor,
    OutputVector,
)
from te_core.engine.models import OpenRequest
from te_core.engine.training_log import TrainingDataLogger, TrainingRecord
from te_core.utils.logger import get_logger

logger = get_logger("te_core.learn_mode")


class LearnModeEnterSignal(AIEnterSignal):
    """〔このクラスがすること〕
    予測期間（horizon）経過後に入力ベクトルの結果をラベル化し、学習データとして保存します。
    ラベルの計算は戦略ごとの translate_to_signal() に委ねます。
    """

    def __init__(
        self,
        context: StrategyContext,
        extractor: InputVectorExtractor,
        *,
        horizon: timedelta,
        training_logger: TrainingDataLogger,
        empty_context: InputVector,
        empty_signal: Optional[OutputVector],
    ) -> None:
        super().__init__(
            context, extractor, empty_context=empty_context, empty_signal=empty_signal
        )
        self.horizon = horizon
        self.training_logger = training_logger
        self._pending: Deque[InputVector] = deque()
        self._last_time = datetime.min

    @property
    def mode(self) -> EnterMode:
        return EnterMode.LEARN

    @property
    def pending(self) -> int:
        return len(self._pending)

    def start(self) -> None:
        self.training_logger.start()

    def stop(self) -> None:
        self.training_logger.stop()

    def current_open_request(self) -> OpenRequest:
        request = super().current_open_request()
        # 入力が無いティックでも、期限の来たベクトルは吐き出す
        self._flush_due()
        return request

    def translate_to_open_request(self, vector: InputVector) -> OpenRequest:
        if vector.intended_open_time > self._last_time:
            self._last_time = vector.intended_open_time
            self._pending.append(vector)
        else:
            logger.debug("input %s not newer than %s; dropped", vector, self._last_time)
        return self.neutral()

    def _flush_due(self) -> None:
        now = self.context.current_time
        while self._pending:
            head = self._pending[0]
            if head.intended_open_time + self.horizon > now:
                break
            output = self.translate_to_signal(head)
            if output is not None:
                self.training_logger.save(TrainingRecord(head, output))
            self._pending.popleft()

    @abstractmethod
    def translate_to_signal(self, vector: InputVector) -> Optional[OutputVector]:
        """〔このメソッドがすること〕 予測期間経過後の相場からラベルを計算します（None で保存しない）。"""
