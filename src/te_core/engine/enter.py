# 〔このモジュールがすること〕
# エントリー判定の抽象（EnterSignal）と、AI 支援エントリーで使う入力/出力ベクトルを定義します。
# - InputVector: 「建玉予定時刻」をキーにした不変の入力（正規化ビュー + 生値ビュー）
# - OutputVector: SignalContext（= InputVector）を包むラベル。等価性は文脈で決まる
# - AIEnterSignal: 抽出器から入力を取り、データ未準備ならニュートラル（Flat）を返す
# - EnterMode: Learn / Player の切り替えは構築時に明示的に選ぶ

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence

from te_core.engine.context import StrategyContext
from te_core.engine.models import Direction, OpenRequest

_TIME_FMT = "%Y-%m-%dT%H:%M:%S"


class EnterMode(str, Enum):
    LEARN = "learn"
    PLAYER = "player"


class EnterSignal(ABC):
    """〔このクラスがすること〕 毎ティック呼ばれ、現在の建玉要求（無ければ None）を返します。"""

    def __init__(self, context: StrategyContext) -> None:
        self.context = context

    @abstractmethod
    def current_open_request(self) -> Optional[OpenRequest]:
        ...

    def start(self) -> None:
        """〔このメソッドがすること〕 データ読み込み完了時のフック（既定は何もしない）。"""

    def stop(self) -> None:
        """〔このメソッドがすること〕 終了時のフック（既定は何もしない）。"""


class InputVector(ABC):
    """〔このクラスがすること〕
    建玉予定時刻で識別される入力ベクトルです。同じ抽出器が 1 回の実行で作るベクトルは
    ヘッダの長さ・順序がすべて同一である前提です。
    """

    def __init__(self, intended_open_time: datetime) -> None:
        self._intended_open_time = intended_open_time

    @property
    def intended_open_time(self) -> datetime:
        return self._intended_open_time

    @property
    def is_empty(self) -> bool:
        return self._intended_open_time == datetime.min

    @property
    @abstractmethod
    def normalized_header(self) -> Sequence[str]:
        ...

    @property
    @abstractmethod
    def normalized_input(self) -> Sequence[float]:
        ...

    @property
    @abstractmethod
    def raw_header(self) -> Sequence[str]:
        ...

    @property
    @abstractmethod
    def raw_input(self) -> Sequence[Any]:
        ...

    def __str__(self) -> str:
        return self._intended_open_time.strftime(_TIME_FMT)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InputVector):
            return NotImplemented
        return self._intended_open_time == other._intended_open_time

    def __hash__(self) -> int:
        return hash(self._intended_open_time)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class OutputVector(ABC):
    """〔このクラスがすること〕 実現した結果（ラベル）です。等価性は signal_context で決まります。"""

    def __init__(self, signal_context: InputVector) -> None:
        self._signal_context = signal_context

    @property
    def signal_context(self) -> InputVector:
        return self._signal_context

    @property
    @abstractmethod
    def normalized_header(self) -> Sequence[str]:
        ...

    @property
    @abstractmethod
    def normalized_output(self) -> Sequence[float]:
        ...

    @property
    @abstractmethod
    def raw_header(self) -> Sequence[str]:
        ...

    @property
    @abstractmethod
    def raw_output(self) -> Sequence[Any]:
        ...

    def __str__(self) -> str:
        return str(self._signal_context)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutputVector):
            return NotImplemented
        return self._signal_context == other._signal_context

    def __hash__(self) -> int:
        return hash(self._signal_context)


class InputVectorExtractor(ABC):
    """〔このクラスがすること〕 現在の入力ベクトルを返します。未準備なら None（または空ベクトル）。"""

    @abstractmethod
    def current_input_vector(self) -> Optional[InputVector]:
        ...


class AIEnterSignal(EnterSignal):
    """〔このクラスがすること〕
    抽出器から入力ベクトルを取得し、データ未準備ならニュートラル要求を返します。
    入力があれば translate_to_open_request() に委ねます。
    """

    def __init__(
        self,
        context: StrategyContext,
        extractor: InputVectorExtractor,
        *,
        empty_context: InputVector,
        empty_signal: Optional[OutputVector],
    ) -> None:
        super().__init__(context)
        self.extractor = extractor
        self.empty_context = empty_context
        self.empty_signal = empty_signal

    @property
    @abstractmethod
    def mode(self) -> EnterMode:
        ...

    def neutral(self) -> OpenRequest:
        return OpenRequest(Direction.FLAT, self.empty_context, self.empty_signal)

    def current_open_request(self) -> OpenRequest:
        vector = self.extractor.current_input_vector()
        if vector is None or vector.is_empty:
            return self.neutral()
        return self.translate_to_open_request(vector)

    @abstractmethod
    def translate_to_open_request(self, vector: InputVector) -> OpenRequest:
        ...
