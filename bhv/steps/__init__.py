"""
ステップライブラリモジュール

ナビゲーション・URL 検証・リスト検証の各ステップと、文言からハンドラを解決するレジストリを提供する。

主要エクスポート:
  - StepRegistry: ステップ文言とハンドラの登録・解決・実行
  - StepHandler: ステップハンドラの共通 Protocol
  - StepContext: ステップ実行コンテキスト
  - StepInfo: ステップのメタ情報
  - create_default_registry: 全ステップ登録済みレジストリの生成
"""

from .registry import StepContext, StepHandler, StepInfo, StepMatch, StepRegistry

__all__ = [
    "StepContext",
    "StepHandler",
    "StepInfo",
    "StepMatch",
    "StepRegistry",
    "create_default_registry",
]


def create_default_registry() -> StepRegistry:
    """全ステップが登録された StepRegistry を生成する。

    Returns:
        全ステップが登録された StepRegistry
    """
    from .lists import register_list_steps
    from .navigation import register_navigation_steps

    registry = StepRegistry()
    register_navigation_steps(registry)
    register_list_steps(registry)
    return registry
