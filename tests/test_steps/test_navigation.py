"""
ナビゲーションステップのテスト

DriverService はモックを使用し、文言から解決された各ハンドラが
正しいドライバ操作とアサーションを行うことを確認する。
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from bhv.core.behavior import AssertionBehavior
from bhv.core.config import BhvConfig
from bhv.core.driver import PlaywrightDriverService
from bhv.core.errors import AssertionFailure, TimeoutExceeded
from bhv.steps import StepContext, create_default_registry
from bhv.steps.navigation import CheckUrlContainsParams


@pytest.fixture
def registry():
    return create_default_registry()


# ---------------------------------------------------------------------------
# レジストリ登録テスト
# ---------------------------------------------------------------------------

class TestNavigationRegistration:
    """ナビゲーションステップの登録テスト。"""

    def test_all_steps_registered(self, registry) -> None:
        for name in [
            "navigate", "navigateToBaseUrl", "navigateToRelativeUrl", "resizeWindow",
            "checkUrl", "checkRelativeUrl", "checkUrlContains", "checkPageTitle",
        ]:
            assert registry.has(name), f"ステップ '{name}' が未登録です"

    def test_examples_resolve_to_their_step(self, registry) -> None:
        """各 StepInfo の例文が自分自身のステップに解決されること。"""
        for info in registry.list_all():
            if info.category == "list":
                continue
            step = registry.match_line(info.example)
            assert step.info.name == info.name, info.example

    @pytest.mark.parametrize(
        "text,behavior",
        [
            ('page "http://test" should be opened', AssertionBehavior.BE),
            ('page "http://test" should be not opened', AssertionBehavior.BE_NOT),
            ('page "http://test" should become opened', AssertionBehavior.BECOME),
            ('page "http://test" should become not opened', AssertionBehavior.BECOME_NOT),
        ],
    )
    def test_behavior_is_parsed(self, registry, text, behavior) -> None:
        params = registry.match("Then", text).parse_params()

        assert params.behavior is behavior
        assert params.url == "http://test"


# ---------------------------------------------------------------------------
# ナビゲーションハンドラテスト
# ---------------------------------------------------------------------------

class TestNavigationHandlers:
    """ナビゲーション系ハンドラのテスト。"""

    async def test_navigate(self, registry, mock_driver, step_context) -> None:
        await registry.execute(mock_driver, "Given", 'URL "http://test" is opened', step_context)

        mock_driver.navigate.assert_awaited_once_with("http://test")

    async def test_navigate_when(self, registry, mock_driver, step_context) -> None:
        await registry.execute(mock_driver, "When", 'user opens URL "http://test"', step_context)

        mock_driver.navigate.assert_awaited_once_with("http://test")

    async def test_navigate_to_base_url(self, registry, mock_driver, step_context) -> None:
        await registry.execute(mock_driver, "When", "user opens application URL", step_context)

        mock_driver.navigate.assert_awaited_once_with("http://localhost:3000")

    async def test_navigate_to_base_url_requires_config(self, registry, mock_driver) -> None:
        with pytest.raises(ValueError, match="base_url"):
            await registry.execute(mock_driver, "Given", "application URL is opened", StepContext())

    @pytest.mark.parametrize(
        "keyword,text",
        [
            ("Given", 'relative URL "/test-url" is opened'),
            ("When", 'user opens relative URL "/test-url"'),
            ("Then", 'user opens relative URL "/test-url"'),
        ],
    )
    async def test_navigate_relative(self, registry, mock_driver, step_context, keyword, text) -> None:
        await registry.execute(mock_driver, keyword, text, step_context)

        mock_driver.navigate.assert_awaited_once_with("http://localhost:3000/test-url")
        mock_driver.navigate_to_relative_url.assert_not_awaited()

    async def test_navigate_relative_falls_back_to_driver_base_url(self, registry, mock_driver) -> None:
        """設定に base_url がなければドライバ側で解決すること。"""
        await registry.execute(mock_driver, "When", 'user opens relative URL "/test-url"', StepContext())

        mock_driver.navigate_to_relative_url.assert_awaited_once_with("/test-url")
        mock_driver.navigate.assert_not_awaited()

    async def test_config_base_url_reaches_playwright_driver(self, registry) -> None:
        """設定の base_url だけでベース URL と相対 URL の両方を開けること。"""
        page = MagicMock()
        page.goto = AsyncMock()
        page.wait_for_load_state = AsyncMock()
        driver = PlaywrightDriverService(page)
        context = StepContext(config=BhvConfig(base_url="http://localhost:3000"))

        await registry.execute(driver, "When", "user opens application URL", context)
        await registry.execute(driver, "When", 'user opens relative URL "/x"', context)

        assert [c.args[0] for c in page.goto.await_args_list] == [
            "http://localhost:3000",
            "http://localhost:3000/x",
        ]

    async def test_resize_window(self, registry, mock_driver, step_context) -> None:
        await registry.execute(
            mock_driver, "When", "user resize window to 480 height and 640 width", step_context
        )

        mock_driver.resize_window.assert_awaited_once_with(480, 640)

    async def test_resize_window_rejects_non_numbers(self, registry, mock_driver, step_context) -> None:
        with pytest.raises(ValidationError):
            await registry.execute(
                mock_driver, "When", "user resize window to tall height and 640 width", step_context
            )


# ---------------------------------------------------------------------------
# URL 検証ハンドラテスト
# ---------------------------------------------------------------------------

class TestUrlChecks:
    """URL 検証ハンドラのテスト。"""

    async def test_check_url_be(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://test/"

        await registry.execute(mock_driver, "Then", 'page "http://test/" should be opened', step_context)

        mock_driver.current_url.assert_awaited_once()

    async def test_check_url_be_fails_with_current_url(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://other/"

        with pytest.raises(AssertionFailure, match="現在の URL は http://other/"):
            await registry.execute(mock_driver, "Then", 'page "http://test/" should be opened', step_context)

    async def test_check_url_become_polls(self, registry, mock_driver, step_context) -> None:
        """URL が遷移後に一致すれば become が成功すること。"""
        mock_driver.current_url = AsyncMock(side_effect=["http://a/", "http://a/", "http://b/"])

        await registry.execute(mock_driver, "Then", 'page "http://b/" should become opened', step_context)

        assert mock_driver.current_url.await_count == 3

    async def test_check_url_become_not_timeout(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://a/"

        with pytest.raises(TimeoutExceeded, match="http://a/"):
            await registry.execute(
                mock_driver, "Then", 'page "http://a/" should become not opened', step_context
            )

    async def test_check_relative_url(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://localhost:3000/items?page=2"

        await registry.execute(mock_driver, "Then", 'relative URL should be "/items?page=2"', step_context)

    async def test_check_relative_url_failure(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://localhost:3000/home"

        with pytest.raises(TimeoutExceeded, match="相対 URL は /home"):
            await registry.execute(mock_driver, "Then", 'relative URL should become "/items"', step_context)

    @pytest.mark.parametrize(
        "keyword,text",
        [
            ("Given", 'page contains "dashboard" URL'),
            ("When", 'page contains "dashboard" URL'),
            ("Then", 'page should contain "dashboard" URL'),
            ("Given", 'page not contains "login" URL'),
            ("Then", 'page should not contain "login" URL'),
        ],
    )
    async def test_check_url_contains(self, registry, mock_driver, step_context, keyword, text) -> None:
        mock_driver.current_url.return_value = "http://localhost:3000/dashboard"

        await registry.execute(mock_driver, keyword, text, step_context)

    async def test_check_url_contains_failure(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url.return_value = "http://localhost:3000/login"

        with pytest.raises(TimeoutExceeded, match="現在の URL は http://localhost:3000/login"):
            await registry.execute(mock_driver, "Then", 'page should contain "dashboard" URL', step_context)

    async def test_check_url_contains_waits_for_redirect(self, registry, mock_driver, step_context) -> None:
        mock_driver.current_url = AsyncMock(side_effect=["http://x/login", "http://x/dashboard"])

        await registry.execute(mock_driver, "Then", 'page should contain "dashboard" URL', step_context)

    @pytest.mark.parametrize(
        "text,expected",
        [("contains", True), ("should", True), ("not contains", False), ("should not", False)],
    )
    def test_polarity_is_resolved(self, text, expected) -> None:
        assert CheckUrlContainsParams(polarity=text, url="x").polarity is expected

    def test_unknown_polarity(self) -> None:
        with pytest.raises(ValidationError):
            CheckUrlContainsParams(polarity="maybe", url="x")


# ---------------------------------------------------------------------------
# タイトル検証ハンドラテスト
# ---------------------------------------------------------------------------

class TestTitleCheck:
    """ページタイトル検証ハンドラのテスト。"""

    async def test_title_be(self, registry, mock_driver, step_context) -> None:
        mock_driver.title.return_value = "Test page"

        await registry.execute(mock_driver, "Then", 'page title should be "Test page"', step_context)

    async def test_empty_title_matches_missing_title(self, registry, mock_driver, step_context) -> None:
        """タイトルなしのページに "" を期待できること。"""
        mock_driver.title.return_value = ""

        await registry.execute(mock_driver, "Then", 'page title should be ""', step_context)

    async def test_title_be_not(self, registry, mock_driver, step_context) -> None:
        mock_driver.title.return_value = "Loading"

        await registry.execute(mock_driver, "Then", 'page title should be not "Done"', step_context)

    async def test_title_become(self, registry, mock_driver, step_context) -> None:
        mock_driver.title = AsyncMock(side_effect=["Loading", "Done"])

        await registry.execute(mock_driver, "Then", 'page title should become "Done"', step_context)

    async def test_title_failure_message(self, registry, mock_driver, step_context) -> None:
        mock_driver.title.return_value = "Loading"

        with pytest.raises(TimeoutExceeded, match="ページタイトルは Loading"):
            await registry.execute(mock_driver, "Then", 'page title should become "Done"', step_context)
