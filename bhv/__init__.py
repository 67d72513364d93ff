"""
bhv — 振る舞いテスト用ステップ定義ライブラリ

自然言語のステップ文言をブラウザ操作とアサーションに対応付ける。
結果整合のポーリングアサーションとリスト包含チェックをコアに持つ。
"""

__version__ = "0.1.0"
