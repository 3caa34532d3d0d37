# 〔このモジュールがすること〕
# 建玉コントローラの判断（エントリー要求・発注・建玉・決済）を 1 件 1 行の JSON で残します。
# 直近分はメモリ上のリングバッファから引け、出力先を渡せば JSONL に追記します。

from __future__ import annotations

import json
import time
from collections import deque
from datetime import datetime
from enum import Enum
from itertools import count
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from te_core.utils.logger import get_logger

logger = get_logger("te_core.decision_log")


def _encode(v: Any) -> Any:
    """〔この関数がすること〕 json.dumps が扱えない値（datetime・Enum など）を文字列側へ寄せます。"""
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, Enum):
        return v.value
    return str(v)


class DecisionLogger:
    """〔このクラスがすること〕
    判断イベントを {seq, t, event, ...} の辞書として保持します。
    ファイルへの書き込みに失敗しても判断処理は止めず、警告ログだけ残します。
    """

    def __init__(self, maxlen: int = 10000, filepath: Optional[str] = None) -> None:
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = count(1)
        self.path: Optional[Path] = Path(filepath) if filepath else None

    def log(self, event: str, **fields: Any) -> None:
        """〔このメソッドがすること〕 1 イベントを記録し、出力先があれば JSON 1 行を追記します。"""
        line = json.dumps(
            {"seq": next(self._seq), "t": time.time(), "event": str(event), **fields},
            ensure_ascii=False,
            default=_encode,
        )
        # バッファにも JSON 化後の値を置き、ファイルと同じ形で読めるようにする
        self._recent.append(json.loads(line))
        if self.path is None:
            return
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning("decision log write failed (%s): %s", self.path, e)

    def latest(self, n: int = 100) -> List[Dict[str, Any]]:
        return list(self._recent)[-n:] if n > 0 else []

    def events(self, name: str) -> List[Dict[str, Any]]:
        """〔このメソッドがすること〕 指定イベント名の記録だけを古い順に返します。"""
        return [r for r in self._recent if r["event"] == name]
