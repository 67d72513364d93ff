"""
ステップレジストリ — ステップ文言（正規表現）とハンドラの対応付け

Given / When / Then の文言パターンを起動時にコンパイルして登録し、
実行時に文言から一致するハンドラと捕捉引数を解決する。

主な構成:
  - StepHandler Protocol: ステップハンドラの共通インターフェース
  - StepContext: ステップ実行時のコンテキスト情報
  - StepInfo: ステップのメタ情報（名前、キーワード、パターン、説明、カテゴリ）
  - StepMatch: 文言の解決結果
  - StepRegistry: ステップハンドラの登録・解決・実行・一覧
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from ..core.config import BhvConfig
from ..core.errors import AmbiguousStepError, StepNotFoundError

if TYPE_CHECKING:
    from ..core.driver import DriverService
    from ..dsl.table import Table

logger = logging.getLogger(__name__)

# 登録に使えるキーワード
STEP_KEYWORDS = ("Given", "When", "Then")

# 直前のキーワードを引き継ぐキーワード（どの登録キーワードにも一致させる）
_CONJUNCTIONS = ("And", "But", "*")

_LINE_PATTERN = re.compile(r"^\s*(Given|When|Then|And|But|\*)\s+(.*?)\s*$")


# ---------------------------------------------------------------------------
# ステップ実行コンテキスト
# ---------------------------------------------------------------------------

@dataclass
class StepContext:
    """ステップ実行時のコンテキスト情報。

    Attributes:
        config: 実行時設定（ベース URL、タイムアウト等）
        table: ステップに付随する期待値テーブル。なければ None
    """

    config: BhvConfig = field(default_factory=BhvConfig)
    table: Optional[Table] = None


# ---------------------------------------------------------------------------
# ステップメタ情報
# ---------------------------------------------------------------------------

@dataclass
class StepInfo:
    """ステップのメタ情報。

    同じハンドラを複数の文言で登録する場合は、文言ごとに StepInfo を作る。

    Attributes:
        name: ハンドラ名（同一ハンドラの登録で共通）
        keyword: Given / When / Then
        pattern: 文言の正規表現（名前付きグループで引数を捕捉、全体一致）
        description: ステップの説明文
        category: カテゴリ（navigation, validation, list）
        example: 文言の例
    """

    name: str
    keyword: str
    pattern: str
    description: str
    category: str
    example: str = ""


# ---------------------------------------------------------------------------
# ステップハンドラ Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class StepHandler(Protocol):
    """ステップハンドラの共通インターフェース。

    StepRegistry に登録するには execute() と get_schema() の両メソッドを実装すること。
    """

    async def execute(self, driver: DriverService, params: BaseModel, context: StepContext) -> None:
        """ステップを実行する。

        Args:
            driver: ブラウザドライバ
            params: get_schema() のモデルで検証済みの捕捉引数
            context: ステップ実行コンテキスト
        """
        ...

    def get_schema(self) -> type[BaseModel]:
        """捕捉引数の Pydantic スキーマクラスを返す。"""
        ...


# ---------------------------------------------------------------------------
# 解決結果
# ---------------------------------------------------------------------------

@dataclass
class _Definition:
    info: StepInfo
    handler: StepHandler
    regex: re.Pattern[str]


@dataclass
class StepMatch:
    """文言の解決結果。

    Attributes:
        info: 一致したステップのメタ情報
        handler: 実行するハンドラ
        arguments: 名前付きグループで捕捉した文字列引数
    """

    info: StepInfo
    handler: StepHandler
    arguments: dict[str, str]

    def parse_params(self) -> BaseModel:
        """捕捉引数をハンドラのスキーマで検証・型変換する。

        Raises:
            pydantic.ValidationError: 引数がスキーマに適合しない場合
        """
        schema = self.handler.get_schema()
        return schema(**self.arguments)


def split_step_line(line: str) -> tuple[str, str]:
    """"Then page title should be ..." のような 1 行をキーワードと文言に分割する。

    Raises:
        ValueError: キーワードで始まらない場合
    """
    m = _LINE_PATTERN.match(line)
    if m is None:
        raise ValueError(
            f"ステップはキーワード（Given/When/Then/And/But）で始まる必要があります: {line!r}"
        )
    return m.group(1), m.group(2)


# ---------------------------------------------------------------------------
# StepRegistry 本体
# ---------------------------------------------------------------------------

class StepRegistry:
    """ステップ文言とハンドラの対応を管理するレジストリ。

    使用例::

        registry = StepRegistry()
        registry.register(NavigateHandler(), StepInfo(
            "navigate", "Given", r'URL "(?P<url>.*)" is opened', "URL を開く", "navigation",
        ))
        match = registry.match("Given", 'URL "http://test" is opened')
        await registry.execute(driver, "Given", 'URL "http://test" is opened', context)
    """

    def __init__(self) -> None:
        """空のレジストリを初期化する。"""
        self._definitions: list[_Definition] = []

    def register(self, handler: StepHandler, info: StepInfo) -> None:
        """ステップハンドラを文言パターンで登録する。

        同じキーワード・パターンが既に登録されている場合は上書きする（警告を出力）。

        Args:
            handler: ステップハンドラインスタンス
            info: ステップのメタ情報

        Raises:
            TypeError: handler が StepHandler Protocol を満たさない場合
            ValueError: キーワードが不正、またはパターンがコンパイルできない場合
        """
        if not isinstance(handler, StepHandler):
            raise TypeError(
                f"handler は StepHandler Protocol を満たす必要があります: "
                f"{type(handler).__name__}"
            )
        if info.keyword not in STEP_KEYWORDS:
            raise ValueError(
                f"キーワードは {', '.join(STEP_KEYWORDS)} のいずれかを指定してください: {info.keyword}"
            )
        try:
            regex = re.compile(info.pattern)
        except re.error as e:
            raise ValueError(f"ステップパターンが不正です: {info.pattern!r}: {e}") from e

        definition = _Definition(info=info, handler=handler, regex=regex)
        for i, existing in enumerate(self._definitions):
            if existing.info.keyword == info.keyword and existing.info.pattern == info.pattern:
                logger.warning(
                    "ステップ '%s %s' のハンドラを上書きします（既存: %s → 新規: %s）",
                    info.keyword, info.pattern,
                    type(existing.handler).__name__, type(handler).__name__,
                )
                self._definitions[i] = definition
                return

        self._definitions.append(definition)
        logger.debug("ステップ '%s %s' を登録しました: %s", info.keyword, info.pattern, type(handler).__name__)

    def match(self, keyword: str, text: str) -> StepMatch:
        """キーワードと文言から実行するステップを解決する。

        And / But / * はどのキーワードの登録にも一致させる。

        Args:
            keyword: Given / When / Then / And / But / *
            text: キーワードを除いた文言

        Returns:
            解決結果

        Raises:
            StepNotFoundError: 一致するステップがない場合
            AmbiguousStepError: 一致するステップが複数ある場合
        """
        any_keyword = keyword in _CONJUNCTIONS
        found: list[StepMatch] = []
        for definition in self._definitions:
            if not any_keyword and definition.info.keyword != keyword:
                continue
            m = definition.regex.fullmatch(text)
            if m is None:
                continue
            arguments = {k: v for k, v in m.groupdict().items() if v is not None}
            found.append(StepMatch(definition.info, definition.handler, arguments))

        if not found:
            raise StepNotFoundError(f"一致するステップがありません: {keyword} {text}")

        # And / But では同一ハンドラが複数キーワードで一致しても曖昧とはしない
        handlers = {id(f.handler) for f in found}
        if len(handlers) > 1:
            candidates = ", ".join(f"{f.info.keyword} {f.info.pattern}" for f in found)
            raise AmbiguousStepError(
                f"複数のステップに一致しました: {keyword} {text}（候補: {candidates}）"
            )
        return found[0]

    def match_line(self, line: str) -> StepMatch:
        """キーワード付きの 1 行からステップを解決する。"""
        keyword, text = split_step_line(line)
        return self.match(keyword, text)

    async def execute(
        self,
        driver: DriverService,
        keyword: str,
        text: str,
        context: Optional[StepContext] = None,
    ) -> None:
        """文言を解決し、捕捉引数を検証してハンドラを実行する。

        Args:
            driver: ブラウザドライバ
            keyword: Given / When / Then / And / But / *
            text: キーワードを除いた文言
            context: ステップ実行コンテキスト。None の場合はデフォルト設定
        """
        step = self.match(keyword, text)
        params = step.parse_params()
        logger.info("%s %s", keyword, text)
        await step.handler.execute(driver, params, context or StepContext())

    def list_all(self) -> list[StepInfo]:
        """登録済み全ステップのメタ情報をカテゴリ・名前・キーワード順で返す。"""
        return sorted(
            (d.info for d in self._definitions),
            key=lambda s: (s.category, s.name, STEP_KEYWORDS.index(s.keyword), s.pattern),
        )

    def has(self, name: str) -> bool:
        """指定名のハンドラが登録されているかを返す。"""
        return any(d.info.name == name for d in self._definitions)

    @property
    def names(self) -> list[str]:
        """登録済み全ハンドラ名をソート済みリストで返す。"""
        return sorted({d.info.name for d in self._definitions})
