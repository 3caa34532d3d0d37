"""
サンプル戦略（te_core エンジンの使い方の例）

1. breakout : レンジブレイクの静的ルール（損切り・時間決済・段階利確・トレーリング・建値撤退）
2. airange  : AI 支援エントリー（学習モードで教師データを作り、プレイヤーモードで再生）

どちらも `consolidation` のレンジ計算を共有します。
"""
__all__: list[str] = ["breakout", "airange"]
