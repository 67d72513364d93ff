"""
ポーリングアサーション — 非同期に変化する UI 状態の結果整合チェック

サンプラー（引数なしの読み取り専用プローブ）を繰り返し呼び出し、
観測値が期待条件を満たすかタイムアウトするまで待機する。

主な機能:
  - should_become: 値の一致/不一致を即時または継続でチェック
  - should_become_bool: 真偽値を返す条件の成立/不成立をチェック
  - should_become_async / should_become_bool_async: asyncio 版（判定は同一）

モード:
  - be / be not: 1 回だけサンプリングし即座に判定（リトライなし）
  - become / become not: 固定間隔でポーリングし、条件成立で即成功、
    タイムアウトで最終観測値付きの TimeoutExceeded を送出
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .behavior import AssertionBehavior
from .errors import AssertionFailure, TimeoutExceeded

logger = logging.getLogger(__name__)

# デフォルトの最大待機時間・ポーリング間隔（ミリ秒）
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_INTERVAL_MS = 100

Sampler = Callable[[], Any]
AsyncSampler = Callable[[], Union[Any, Awaitable[Any]]]
Message = Union[str, Callable[[Any], str]]

_NOT_SAMPLED = "<未取得>"


# ---------------------------------------------------------------------------
# 値の比較
# ---------------------------------------------------------------------------

def _is_absent(value: Any) -> bool:
    """None と空文字列を「値なし」として扱う。"""
    return value is None or (isinstance(value, str) and value == "")


def values_equal(observed: Any, expected: Any) -> bool:
    """観測値と期待値を比較する。

    期待値・観測値のどちらかが「値なし」（None または空文字列）の場合は、
    両方が「値なし」のときだけ一致とみなす。タイトル未設定のページに
    期待値 "" を指定するケースを想定している。

    Args:
        observed: サンプラーが返した値
        expected: 期待値

    Returns:
        一致する場合は True
    """
    if _is_absent(observed) or _is_absent(expected):
        return _is_absent(observed) and _is_absent(expected)
    return observed == expected


def _value_check(expected: Any, behavior: AssertionBehavior) -> Callable[[Any], bool]:
    def check(sample: Any) -> bool:
        return values_equal(sample, expected) != behavior.is_negated
    return check


def _bool_check(expected: bool, behavior: AssertionBehavior) -> Callable[[Any], bool]:
    def check(sample: Any) -> bool:
        return (bool(sample) == bool(expected)) != behavior.is_negated
    return check


# ---------------------------------------------------------------------------
# ポーリング状態
# ---------------------------------------------------------------------------

@dataclass
class _PollState:
    """1 回のチェック中に観測した情報。

    Attributes:
        attempts: サンプリング回数（例外で終わったものを含む）
        last_value: 最後に正常取得できた値
        sampled: 1 回でも正常に値を取得できたか
        last_error: 最後のサンプリングで発生した例外
    """

    attempts: int = 0
    last_value: Any = None
    sampled: bool = False
    last_error: Optional[BaseException] = None

    def record(self, value: Any) -> None:
        self.attempts += 1
        self.last_value = value
        self.sampled = True
        self.last_error = None

    def record_error(self, exc: BaseException) -> None:
        self.attempts += 1
        self.last_error = exc

    @property
    def observed_text(self) -> str:
        return repr(self.last_value) if self.sampled else _NOT_SAMPLED


def _resolve_timing(timeout: Optional[int], interval: Optional[int]) -> tuple[int, int]:
    timeout_ms = DEFAULT_TIMEOUT_MS if timeout is None else timeout
    interval_ms = DEFAULT_INTERVAL_MS if interval is None else interval
    if timeout_ms < 0:
        raise ValueError(f"timeout は 0 以上を指定してください: {timeout_ms}")
    if interval_ms <= 0:
        raise ValueError(f"interval は正の値を指定してください: {interval_ms}")
    return timeout_ms, interval_ms


# ---------------------------------------------------------------------------
# 失敗メッセージ
# ---------------------------------------------------------------------------

def _describe_failure(
    message: Message,
    expected: Any,
    behavior: AssertionBehavior,
    state: _PollState,
    timeout_ms: Optional[int] = None,
) -> str:
    """最終観測値を含む失敗メッセージを組み立てる。

    message が呼び出し可能な場合は最終観測値を渡して文脈メッセージを生成する。
    """
    if callable(message):
        context = message(state.last_value)
    else:
        context = message

    condition = "と一致しない" if behavior.is_negated else "と一致する"
    detail = f"期待: {expected!r} {condition}こと、最終観測値: {state.observed_text}"
    if timeout_ms is not None:
        detail += f"、{timeout_ms}ms 以内に {state.attempts} 回確認"
    if state.last_error is not None:
        detail += f"、最後のエラー: {type(state.last_error).__name__}: {state.last_error}"

    if context:
        return f"{context}（{detail}）"
    return detail


def _fail(
    message: Message,
    expected: Any,
    behavior: AssertionBehavior,
    state: _PollState,
    timeout_ms: int,
) -> AssertionFailure:
    if behavior.is_eventual:
        return TimeoutExceeded(
            _describe_failure(message, expected, behavior, state, timeout_ms),
            expected=expected,
            last_value=state.last_value,
            behavior=behavior,
            timeout_ms=timeout_ms,
            attempts=state.attempts,
            last_error=state.last_error,
        )
    return AssertionFailure(
        _describe_failure(message, expected, behavior, state),
        expected=expected,
        last_value=state.last_value,
        behavior=behavior,
    )


# ---------------------------------------------------------------------------
# 同期ポーリング
# ---------------------------------------------------------------------------

def _poll(
    sampler: Sampler,
    check: Callable[[Any], bool],
    behavior: AssertionBehavior,
    timeout_ms: int,
    interval_ms: int,
) -> tuple[_PollState, bool]:
    state = _PollState()

    # 即時チェック: 1 回だけサンプリング（例外はそのまま伝播）
    if not behavior.is_eventual:
        value = sampler()
        state.record(value)
        return state, check(value)

    start = time.perf_counter()
    deadline_sec = timeout_ms / 1000.0
    interval_sec = interval_ms / 1000.0

    while True:
        try:
            value = sampler()
        except Exception as exc:
            state.record_error(exc)
            logger.debug("サンプリング中にエラー（%d 回目）: %s", state.attempts, exc)
        else:
            state.record(value)
            if check(value):
                logger.debug(
                    "条件が成立しました（%d 回目、%.0fms 経過）",
                    state.attempts, (time.perf_counter() - start) * 1000,
                )
                return state, True

        remaining = deadline_sec - (time.perf_counter() - start)
        if remaining <= 0:
            return state, False
        time.sleep(min(interval_sec, remaining))


def should_become(
    sampler: Sampler,
    expected: Any,
    behavior: AssertionBehavior,
    message: Message = "",
    *,
    timeout: Optional[int] = None,
    interval: Optional[int] = None,
) -> None:
    """サンプラーの値が期待値と一致する（しない）ことを検証する。

    be / be not は 1 回だけ判定し、become / become not は条件が成立するまで
    interval ミリ秒間隔でポーリングする。継続チェック中にサンプラーが
    例外を送出した場合は「不一致」として扱い、ポーリングを継続する。

    Args:
        sampler: 現在値を返す引数なしの関数
        expected: 期待値（None と "" は「値なし」として等価）
        behavior: アサーション種別
        message: 失敗時の文脈メッセージ、または最終観測値を受け取り文字列を返す関数
        timeout: 最大待機時間（ミリ秒、デフォルト: 5000）
        interval: ポーリング間隔（ミリ秒、デフォルト: 100）

    Raises:
        AssertionFailure: 即時チェックの条件が成立しなかった場合
        TimeoutExceeded: 継続チェックがタイムアウトまでに成立しなかった場合
    """
    timeout_ms, interval_ms = _resolve_timing(timeout, interval)
    state, ok = _poll(sampler, _value_check(expected, behavior), behavior, timeout_ms, interval_ms)
    if not ok:
        raise _fail(message, expected, behavior, state, timeout_ms)


def should_become_bool(
    condition: Sampler,
    expected: bool,
    message: Message = "",
    *,
    behavior: AssertionBehavior = AssertionBehavior.BECOME,
    timeout: Optional[int] = None,
    interval: Optional[int] = None,
) -> None:
    """真偽値を返す条件が expected になることを検証する。

    判定以外の振る舞い（モード・タイムアウト・例外の扱い）は should_become と同じ。
    否定系の behavior を指定した場合は expected の真偽を反転して判定する。
    """
    timeout_ms, interval_ms = _resolve_timing(timeout, interval)
    state, ok = _poll(condition, _bool_check(expected, behavior), behavior, timeout_ms, interval_ms)
    if not ok:
        raise _fail(message, expected, behavior, state, timeout_ms)


# ---------------------------------------------------------------------------
# 非同期ポーリング
# ---------------------------------------------------------------------------

async def _sample_async(sampler: AsyncSampler) -> Any:
    value = sampler()
    if inspect.isawaitable(value):
        value = await value
    return value


async def _poll_async(
    sampler: AsyncSampler,
    check: Callable[[Any], bool],
    behavior: AssertionBehavior,
    timeout_ms: int,
    interval_ms: int,
) -> tuple[_PollState, bool]:
    state = _PollState()

    if not behavior.is_eventual:
        value = await _sample_async(sampler)
        state.record(value)
        return state, check(value)

    start = time.perf_counter()
    deadline_sec = timeout_ms / 1000.0
    interval_sec = interval_ms / 1000.0

    while True:
        # 1 回のサンプリングも残り時間で打ち切る。初回だけは timeout=0 でも interval まで待つ
        budget = deadline_sec - (time.perf_counter() - start)
        if budget <= 0:
            if state.attempts:
                return state, False
            budget = interval_sec
        try:
            value = await asyncio.wait_for(_sample_async(sampler), budget)
        except asyncio.TimeoutError:
            state.record_error(
                TimeoutError(f"サンプリングが {budget * 1000:.0f}ms 以内に完了しませんでした")
            )
            logger.debug("サンプリングがタイムアウトしました（%d 回目）", state.attempts)
        except Exception as exc:
            state.record_error(exc)
            logger.debug("サンプリング中にエラー（%d 回目）: %s", state.attempts, exc)
        else:
            state.record(value)
            if check(value):
                logger.debug(
                    "条件が成立しました（%d 回目、%.0fms 経過）",
                    state.attempts, (time.perf_counter() - start) * 1000,
                )
                return state, True

        remaining = deadline_sec - (time.perf_counter() - start)
        if remaining <= 0:
            return state, False
        await asyncio.sleep(min(interval_sec, remaining))


async def should_become_async(
    sampler: AsyncSampler,
    expected: Any,
    behavior: AssertionBehavior,
    message: Message = "",
    *,
    timeout: Optional[int] = None,
    interval: Optional[int] = None,
) -> None:
    """should_become の asyncio 版。

    sampler は値またはコルーチンを返してよい。待機には asyncio.sleep を使う。
    """
    timeout_ms, interval_ms = _resolve_timing(timeout, interval)
    state, ok = await _poll_async(
        sampler, _value_check(expected, behavior), behavior, timeout_ms, interval_ms
    )
    if not ok:
        raise _fail(message, expected, behavior, state, timeout_ms)


async def should_become_bool_async(
    condition: AsyncSampler,
    expected: bool,
    message: Message = "",
    *,
    behavior: AssertionBehavior = AssertionBehavior.BECOME,
    timeout: Optional[int] = None,
    interval: Optional[int] = None,
) -> None:
    """should_become_bool の asyncio 版。"""
    timeout_ms, interval_ms = _resolve_timing(timeout, interval)
    state, ok = await _poll_async(
        condition, _bool_check(expected, behavior), behavior, timeout_ms, interval_ms
    )
    if not ok:
        raise _fail(message, expected, behavior, state, timeout_ms)
