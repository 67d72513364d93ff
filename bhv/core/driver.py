"""
ドライバ抽象 — ステップが必要とするブラウザ操作の最小インターフェース

主な構成:
  - DriverService Protocol: ナビゲーション・URL/タイトル取得・ウィンドウリサイズ・リスト取得
  - ListWrapper Protocol: 項目テキストを読み取れるリスト要素
  - PlaywrightDriverService: Playwright async API による実装
  - LocatorListWrapper: Playwright Locator によるリスト実装
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urljoin, urlsplit

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

    from .config import BhvConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class ListWrapper(Protocol):
    """項目テキストのリストを返す要素。"""

    async def list_values(self) -> list[str]:
        """現在表示されている項目のテキストを表示順に返す。"""
        ...


@runtime_checkable
class DriverService(Protocol):
    """ステップハンドラが使用するブラウザドライバのインターフェース。"""

    async def navigate(self, url: str) -> None: ...

    async def navigate_to_relative_url(self, url: str) -> None: ...

    async def current_url(self) -> str: ...

    async def title(self) -> str: ...

    async def resize_window(self, height: int, width: int) -> None: ...

    def find_list(self, caption: str) -> ListWrapper: ...


def path_and_query(url: str) -> str:
    """URL のパスとクエリ部分を返す（例: "/items?page=2"）。"""
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        return f"{path}?{parts.query}"
    return path


# ---------------------------------------------------------------------------
# Playwright 実装
# ---------------------------------------------------------------------------

class LocatorListWrapper:
    """Locator が指す全要素のテキストをリスト値として返す。"""

    def __init__(self, items: Locator) -> None:
        self._items = items

    async def list_values(self) -> list[str]:
        texts = await self._items.all_text_contents()
        return [text.strip() for text in texts]


class PlaywrightDriverService:
    """Playwright の Page を操作する DriverService 実装。

    使用例::

        driver = await PlaywrightDriverService.from_config(page, load_config())
        await driver.navigate_to_relative_url("/login")
    """

    def __init__(self, page: Page, base_url: str = "") -> None:
        self._page = page
        self._base_url = base_url

    @classmethod
    async def from_config(cls, page: Page, config: BhvConfig) -> PlaywrightDriverService:
        """設定の base_url とビューポートサイズを適用したドライバを生成する。"""
        driver = cls(page, base_url=config.base_url)
        await driver.resize_window(config.viewport_height, config.viewport_width)
        return driver

    @property
    def base_url(self) -> str:
        return self._base_url

    async def navigate(self, url: str) -> None:
        logger.info("navigate: %s", url)
        await self._page.goto(url)
        await self._page.wait_for_load_state("domcontentloaded")

    async def navigate_to_relative_url(self, url: str) -> None:
        if not self._base_url:
            raise ValueError("相対 URL を開くには base_url の設定が必要です（bhv.yaml または BHV_BASE_URL）")
        await self.navigate(urljoin(self._base_url, url))

    async def current_url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    async def resize_window(self, height: int, width: int) -> None:
        logger.info("resize window: %dx%d", width, height)
        await self._page.set_viewport_size({"width": width, "height": height})

    def find_list(self, caption: str) -> ListWrapper:
        # ARIA の list ロールとアクセシブル名でリストを特定する
        items = self._page.get_by_role("list", name=caption).get_by_role("listitem")
        return LocatorListWrapper(items)
