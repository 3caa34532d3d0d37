"""
te_core ― 売買判断エンジンの共通部

1. engine.controller   : 建玉ライフサイクル（Flat → Open → Flat）
2. engine.arbiter      : 決済アドバイスの統合（成行 → 損切り → 利確）
3. engine.enter        : エントリー判定の抽象と AI 用ベクトル
4. engine.learn_mode   : 学習モード（ラベル付けして保存、建玉しない）
5. engine.player       : プレイヤーモード（CSV の判定表を再生）
6. engine.training_log : 学習データの非同期 CSV 書き出し

共通ユーティリティ（ログ・設定・時刻）は `te_core.utils` を使用。
"""

__version__ = "0.1.0"
