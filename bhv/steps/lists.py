"""
リストステップ — リスト要素が期待値テーブルの項目を含むことの検証

例::

    Then "Test" list should contain the following items:
      | itemName     |
      | Test value 1 |
      | Test value 2 |

Given は 1 回だけ判定し、Then はリストを読み直しながら
設定のタイムアウトまでポーリングする。
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from ..core.behavior import AssertionBehavior
from ..core.errors import TableError
from ..core.lists import contains_all, contains_in_order, missing_items
from ..core.polling import should_become_bool_async
from ..dsl.table import table_to_rows
from .registry import StepContext, StepInfo, StepRegistry

if TYPE_CHECKING:
    from ..core.driver import DriverService

logger = logging.getLogger(__name__)


class ListCheckMode(str, enum.Enum):
    """リスト検証の種別。"""

    CONTAIN = "contain"
    CONTAIN_IN_EXACT_ORDER = "contain in exact order"
    NOT_CONTAIN = "not contain"


class CheckListParams(BaseModel):
    """リスト検証ステップのパラメータ。"""
    caption: str
    mode: ListCheckMode


class CheckListContainsItemsHandler:
    """リストがテーブルの項目を含む（順序通りに含む / 含まない）ことを検証する。

    Args:
        eventual: True の場合はリストを読み直しながらポーリングする
    """

    def __init__(self, eventual: bool = True) -> None:
        self._eventual = eventual

    async def execute(self, driver: DriverService, params: CheckListParams, context: StepContext) -> None:
        if context.table is None:
            raise TableError("このステップには期待値テーブルが必要です")
        reference = table_to_rows(context.table)
        wrapper = driver.find_list(params.caption)

        exact_order = params.mode is ListCheckMode.CONTAIN_IN_EXACT_ORDER
        expected = params.mode is not ListCheckMode.NOT_CONTAIN
        observed: list[str] = []

        async def check() -> bool:
            nonlocal observed
            observed = await wrapper.list_values()
            if exact_order:
                return contains_in_order(observed, reference)
            return contains_all(observed, reference)

        def describe(_) -> str:
            text = f"リスト '{params.caption}' の項目は {observed}、期待値は {reference}（{params.mode.value}）"
            if expected and not exact_order:
                text += f"、不足: {missing_items(observed, reference)}"
            return text

        logger.info("list '%s' %s %s", params.caption, params.mode.value, reference)
        await should_become_bool_async(
            check,
            expected,
            describe,
            behavior=AssertionBehavior.of(negated=False, eventual=self._eventual),
            timeout=context.config.assert_timeout_ms,
            interval=context.config.poll_interval_ms,
        )

    def get_schema(self) -> type[BaseModel]:
        return CheckListParams


def register_list_steps(registry: StepRegistry) -> None:
    """リスト検証ステップをレジストリに登録する。"""
    registry.register(
        CheckListContainsItemsHandler(eventual=False),
        StepInfo(
            "checkListContainsItems", "Given",
            r'"(?P<caption>.*?)" list (?P<mode>contain|not contain) the following items:',
            "リストがテーブルの項目を含むことを検証（即時）", "list",
            'Given "Test" list contain the following items:',
        ),
    )
    registry.register(
        CheckListContainsItemsHandler(eventual=True),
        StepInfo(
            "checkListContainsItems", "Then",
            r'"(?P<caption>.*?)" list should (?P<mode>contain|contain in exact order|not contain)'
            r" the following items:",
            "リストがテーブルの項目を含むことを検証（継続）", "list",
            'Then "Test" list should contain in exact order the following items:',
        ),
    )
