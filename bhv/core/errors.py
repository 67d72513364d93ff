"""
例外定義 — アサーション失敗・ステップ解決失敗・テーブル解析失敗

主な構成:
  - AssertionFailure: 即時チェックの失敗（AssertionError のサブクラス）
  - TimeoutExceeded: 継続チェックがタイムアウトまでに条件を満たさなかった
  - StepNotFoundError / AmbiguousStepError: フレーズに対応するステップの解決失敗
  - TableError: 期待値テーブルの解析失敗
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .behavior import AssertionBehavior


class AssertionFailure(AssertionError):
    """アサーション条件が成立しなかった場合のエラー。

    pytest 等のテストランナーが通常の失敗として扱えるよう
    AssertionError を継承する。

    Attributes:
        message: 呼び出し側が指定した文脈メッセージ
        expected: 期待値
        last_value: 最後に観測した値
        behavior: アサーション種別
    """

    def __init__(
        self,
        message: str,
        *,
        expected: Any = None,
        last_value: Any = None,
        behavior: Optional[AssertionBehavior] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.expected = expected
        self.last_value = last_value
        self.behavior = behavior


class TimeoutExceeded(AssertionFailure):
    """継続チェック（become / become not）がタイムアウトした場合のエラー。

    Attributes:
        timeout_ms: 適用したタイムアウト（ミリ秒）
        attempts: サンプリング回数
        last_error: 最後のサンプリングで発生した例外（なければ None）
    """

    def __init__(
        self,
        message: str,
        *,
        expected: Any = None,
        last_value: Any = None,
        behavior: Optional[AssertionBehavior] = None,
        timeout_ms: int = 0,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            expected=expected,
            last_value=last_value,
            behavior=behavior,
        )
        self.timeout_ms = timeout_ms
        self.attempts = attempts
        self.last_error = last_error


class StepNotFoundError(LookupError):
    """フレーズに一致するステップが登録されていない場合のエラー。"""


class AmbiguousStepError(LookupError):
    """フレーズに一致するステップが複数存在する場合のエラー。"""


class TableError(ValueError):
    """期待値テーブルの形式が不正な場合のエラー。"""
