"""
ナビゲーションステップ — URL 遷移とページ URL・タイトルの検証

カテゴリ:
  - ナビゲーション: URL を開く、ベース URL を開く、相対 URL を開く、ウィンドウリサイズ
  - 検証: URL 一致、相対 URL 一致、URL の部分一致、ページタイトル

検証ステップは be / be not / become / become not を受け付け、
become 系は設定のタイムアウトまでポーリングする。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

from pydantic import BaseModel, Field, field_validator

from ..core.behavior import AssertionBehavior
from ..core.driver import path_and_query
from ..core.polling import should_become_async, should_become_bool_async
from .registry import StepContext, StepInfo, StepRegistry

if TYPE_CHECKING:
    from ..core.driver import DriverService

logger = logging.getLogger(__name__)

_BEHAVIOR = r"(?P<behavior>be|be not|become|become not)"


# ===========================================================================
# パラメータスキーマ定義
# ===========================================================================

class NavigateParams(BaseModel):
    """URL を開くステップのパラメータ。"""
    url: str


class NoParams(BaseModel):
    """引数を取らないステップのパラメータ。"""


class CheckUrlParams(BaseModel):
    """URL 検証ステップのパラメータ。"""
    url: str
    behavior: AssertionBehavior


class CheckUrlContainsParams(BaseModel):
    """URL 部分一致ステップのパラメータ。

    polarity は "contains" / "should" で True、"not contains" / "should not" で False。
    """
    polarity: bool
    url: str

    @field_validator("polarity", mode="before")
    @classmethod
    def parse_polarity(cls, value):
        if isinstance(value, str):
            words = value.split()
            if words in (["contains"], ["should"]):
                return True
            if words in (["not", "contains"], ["should", "not"]):
                return False
            raise ValueError(f"未知の極性です: {value!r}")
        return value


class CheckTitleParams(BaseModel):
    """ページタイトル検証ステップのパラメータ。"""
    behavior: AssertionBehavior
    title: Optional[str] = None


class ResizeWindowParams(BaseModel):
    """ウィンドウリサイズステップのパラメータ。"""
    height: int = Field(gt=0)
    width: int = Field(gt=0)


# ===========================================================================
# ナビゲーションハンドラ
# ===========================================================================

class NavigateHandler:
    """指定 URL を開く。"""

    async def execute(self, driver: DriverService, params: NavigateParams, context: StepContext) -> None:
        await driver.navigate(params.url)

    def get_schema(self) -> type[BaseModel]:
        return NavigateParams


class NavigateToBaseUrlHandler:
    """設定のベース URL を開く。"""

    async def execute(self, driver: DriverService, params: NoParams, context: StepContext) -> None:
        base_url = context.config.base_url
        if not base_url:
            raise ValueError("base_url が設定されていません（bhv.yaml または BHV_BASE_URL）")
        await driver.navigate(base_url)

    def get_schema(self) -> type[BaseModel]:
        return NoParams


class NavigateToRelativeUrlHandler:
    """ベース URL からの相対 URL を開く。"""

    async def execute(self, driver: DriverService, params: NavigateParams, context: StepContext) -> None:
        # 設定の base_url を優先し、未設定ならドライバ自身の base_url で解決する
        base_url = context.config.base_url
        if base_url:
            await driver.navigate(urljoin(base_url, params.url))
        else:
            await driver.navigate_to_relative_url(params.url)

    def get_schema(self) -> type[BaseModel]:
        return NavigateParams


class ResizeWindowHandler:
    """ブラウザウィンドウのサイズを変更する。"""

    async def execute(self, driver: DriverService, params: ResizeWindowParams, context: StepContext) -> None:
        await driver.resize_window(params.height, params.width)

    def get_schema(self) -> type[BaseModel]:
        return ResizeWindowParams


# ===========================================================================
# 検証ハンドラ
# ===========================================================================

class CheckUrlHandler:
    """現在の URL が指定 URL と一致する（しない）ことを検証する。"""

    async def execute(self, driver: DriverService, params: CheckUrlParams, context: StepContext) -> None:
        await should_become_async(
            driver.current_url,
            params.url,
            params.behavior,
            lambda current: f"現在の URL は {current}",
            timeout=context.config.assert_timeout_ms,
            interval=context.config.poll_interval_ms,
        )

    def get_schema(self) -> type[BaseModel]:
        return CheckUrlParams


class CheckRelativeUrlHandler:
    """現在の URL のパス＋クエリが指定値と一致する（しない）ことを検証する。"""

    async def execute(self, driver: DriverService, params: CheckUrlParams, context: StepContext) -> None:
        async def relative_url() -> str:
            return path_and_query(await driver.current_url())

        await should_become_async(
            relative_url,
            params.url,
            params.behavior,
            lambda current: f"相対 URL は {current}",
            timeout=context.config.assert_timeout_ms,
            interval=context.config.poll_interval_ms,
        )

    def get_schema(self) -> type[BaseModel]:
        return CheckUrlParams


class CheckUrlContainsHandler:
    """現在の URL が指定文字列を含む（含まない）ようになることを検証する。"""

    async def execute(
        self, driver: DriverService, params: CheckUrlContainsParams, context: StepContext
    ) -> None:
        last_url = ""

        async def url_contains() -> bool:
            nonlocal last_url
            last_url = await driver.current_url()
            return params.url in last_url

        await should_become_bool_async(
            url_contains,
            params.polarity,
            lambda _: f"現在の URL は {last_url}",
            timeout=context.config.assert_timeout_ms,
            interval=context.config.poll_interval_ms,
        )

    def get_schema(self) -> type[BaseModel]:
        return CheckUrlContainsParams


class CheckPageTitleHandler:
    """ページタイトルが指定値と一致する（しない）ことを検証する。

    空のタイトル（""）は「タイトルなし」として扱う。
    """

    async def execute(self, driver: DriverService, params: CheckTitleParams, context: StepContext) -> None:
        await should_become_async(
            driver.title,
            params.title,
            params.behavior,
            lambda current: f"ページタイトルは {current}",
            timeout=context.config.assert_timeout_ms,
            interval=context.config.poll_interval_ms,
        )

    def get_schema(self) -> type[BaseModel]:
        return CheckTitleParams


# ===========================================================================
# レジストリ登録
# ===========================================================================

def register_navigation_steps(registry: StepRegistry) -> None:
    """ナビゲーション・URL 検証ステップをレジストリに登録する。"""
    navigate = NavigateHandler()
    base_url = NavigateToBaseUrlHandler()
    relative = NavigateToRelativeUrlHandler()
    contains = CheckUrlContainsHandler()
    resize = ResizeWindowHandler()

    steps = [
        # ナビゲーション
        (navigate, StepInfo("navigate", "Given", r'URL "(?P<url>.*)" is opened',
                            "URL を開く", "navigation", 'Given URL "http://test" is opened')),
        (navigate, StepInfo("navigate", "When", r'user opens URL "(?P<url>.*)"',
                            "URL を開く", "navigation", 'When user opens URL "http://test"')),
        (base_url, StepInfo("navigateToBaseUrl", "Given", r"application URL is opened",
                            "設定のベース URL を開く", "navigation", "Given application URL is opened")),
        (base_url, StepInfo("navigateToBaseUrl", "When", r"user opens application URL",
                            "設定のベース URL を開く", "navigation", "When user opens application URL")),
        (relative, StepInfo("navigateToRelativeUrl", "Given", r'relative URL "(?P<url>.*)" is opened',
                            "ベース URL からの相対 URL を開く", "navigation",
                            'Given relative URL "/test-url" is opened')),
        (relative, StepInfo("navigateToRelativeUrl", "When", r'user opens relative URL "(?P<url>.*)"',
                            "ベース URL からの相対 URL を開く", "navigation",
                            'When user opens relative URL "/test-url"')),
        (relative, StepInfo("navigateToRelativeUrl", "Then", r'user opens relative URL "(?P<url>.*)"',
                            "ベース URL からの相対 URL を開く", "navigation",
                            'Then user opens relative URL "/test-url"')),
        (resize, StepInfo("resizeWindow", "Given",
                          r"user resize window to (?P<height>.*) height and (?P<width>.*) width",
                          "ウィンドウサイズを変更", "navigation",
                          "Given user resize window to 480 height and 640 width")),
        (resize, StepInfo("resizeWindow", "When",
                          r"user resize window to (?P<height>.*) height and (?P<width>.*) width",
                          "ウィンドウサイズを変更", "navigation",
                          "When user resize window to 480 height and 640 width")),
        # 検証
        (CheckUrlHandler(), StepInfo("checkUrl", "Then", rf'page "(?P<url>.*)" should {_BEHAVIOR} opened',
                                     "現在の URL を検証", "validation",
                                     'Then page "http://test" should become opened')),
        (CheckRelativeUrlHandler(), StepInfo("checkRelativeUrl", "Then",
                                             rf'relative URL should {_BEHAVIOR} "(?P<url>.*)"',
                                             "ベース URL からの相対 URL を検証", "validation",
                                             'Then relative URL should become "/test-page"')),
        (contains, StepInfo("checkUrlContains", "Given",
                            r'page (?P<polarity>contains|not contains) "(?P<url>.*)" URL',
                            "URL が文字列を含むことを検証", "validation",
                            'Given page contains "test" URL')),
        (contains, StepInfo("checkUrlContains", "When",
                            r'page (?P<polarity>contains|not contains) "(?P<url>.*)" URL',
                            "URL が文字列を含むことを検証", "validation",
                            'When page not contains "test" URL')),
        (contains, StepInfo("checkUrlContains", "Then",
                            r'page (?P<polarity>should|should not) contain "(?P<url>.*)" URL',
                            "URL が文字列を含むことを検証", "validation",
                            'Then page should contain "test" URL')),
        (CheckPageTitleHandler(), StepInfo("checkPageTitle", "Then",
                                           rf'page title should {_BEHAVIOR} "(?P<title>.*)"',
                                           "ページタイトルを検証", "validation",
                                           'Then page title should be "Test page"')),
    ]

    for handler, info in steps:
        registry.register(handler, info)
    logger.debug("ナビゲーションステップ %d 件を登録しました", len(steps))
