"""
テスト共通フィクスチャ

ドライバのモックと、期待値テーブルのサンプルを提供する。
実際のブラウザは起動しない。
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from bhv.core.config import BhvConfig
from bhv.steps import StepContext


def make_mock_driver(*, url: str = "http://localhost:3000/", title: str = "") -> MagicMock:
    """DriverService のモックを生成する。

    Args:
        url: current_url() の戻り値
        title: title() の戻り値
    """
    driver = MagicMock()
    driver.navigate = AsyncMock()
    driver.navigate_to_relative_url = AsyncMock()
    driver.current_url = AsyncMock(return_value=url)
    driver.title = AsyncMock(return_value=title)
    driver.resize_window = AsyncMock()
    driver.find_list = MagicMock()
    return driver


@pytest.fixture
def fast_config() -> BhvConfig:
    """継続チェックが短時間で終わる設定。"""
    return BhvConfig(base_url="http://localhost:3000", assert_timeout_ms=100, poll_interval_ms=10)


@pytest.fixture
def step_context(fast_config: BhvConfig) -> StepContext:
    """短時間設定のステップ実行コンテキスト。"""
    return StepContext(config=fast_config)


@pytest.fixture
def mock_driver() -> MagicMock:
    """DriverService のモック。"""
    return make_mock_driver()


@pytest.fixture
def sample_table_text() -> str:
    """1 列の期待値テーブル文字列。"""
    return """\
| itemName     |
| Test value 1 |
| Test value 2 |
"""
