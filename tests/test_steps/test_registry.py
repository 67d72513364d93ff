"""
StepRegistry のテスト

register / match / execute / list_all の動作確認、
未登録・曖昧な文言のエラー、Protocol 準拠チェックを検証する。
"""

from __future__ import annotations

import pytest
from pydantic import BaseModel, ValidationError

from bhv.core.errors import AmbiguousStepError, StepNotFoundError
from bhv.steps.registry import (
    StepContext,
    StepHandler,
    StepInfo,
    StepRegistry,
    split_step_line,
)


# ---------------------------------------------------------------------------
# テスト用ダミーハンドラ
# ---------------------------------------------------------------------------

class DummyParams(BaseModel):
    """テスト用パラメータスキーマ。"""
    value: str = ""


class CountParams(BaseModel):
    """整数を捕捉するテスト用スキーマ。"""
    count: int


class DummyHandler:
    """StepHandler Protocol を満たすテスト用ハンドラ。実行時の引数を記録する。"""

    def __init__(self, schema: type[BaseModel] = DummyParams) -> None:
        self.schema = schema
        self.calls: list[tuple] = []

    async def execute(self, driver, params, context: StepContext) -> None:
        self.calls.append((driver, params, context))

    def get_schema(self) -> type[BaseModel]:
        return self.schema


class InvalidHandler:
    """StepHandler Protocol を満たさないハンドラ（execute がない）。"""

    def get_schema(self) -> type[BaseModel]:
        return DummyParams


def _info(name: str, keyword: str, pattern: str, category: str = "test") -> StepInfo:
    return StepInfo(name, keyword, pattern, f"{name} ステップ", category)


# ---------------------------------------------------------------------------
# register テスト
# ---------------------------------------------------------------------------

class TestStepRegistryRegister:
    """register() の基本動作テスト。"""

    def test_register_and_has(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Given", r"page is opened"))

        assert registry.has("open") is True
        assert registry.has("close") is False
        assert registry.names == ["open"]

    def test_protocol_check(self) -> None:
        """StepHandler Protocol を満たさないハンドラは TypeError になること。"""
        registry = StepRegistry()

        with pytest.raises(TypeError, match="StepHandler"):
            registry.register(InvalidHandler(), _info("bad", "Given", r"x"))

    def test_dummy_satisfies_protocol(self) -> None:
        assert isinstance(DummyHandler(), StepHandler)

    def test_invalid_keyword(self) -> None:
        with pytest.raises(ValueError, match="キーワード"):
            StepRegistry().register(DummyHandler(), _info("x", "And", r"x"))

    def test_invalid_pattern(self) -> None:
        with pytest.raises(ValueError, match="パターンが不正"):
            StepRegistry().register(DummyHandler(), _info("x", "Given", r"(unclosed"))

    def test_same_pattern_overwrites(self, caplog: pytest.LogCaptureFixture) -> None:
        """同じキーワード・パターンの登録は上書きされ、警告が出ること。"""
        registry = StepRegistry()
        first, second = DummyHandler(), DummyHandler()
        registry.register(first, _info("open", "Given", r"page is opened"))

        with caplog.at_level("WARNING"):
            registry.register(second, _info("open", "Given", r"page is opened"))

        assert registry.match("Given", "page is opened").handler is second
        assert len(registry.list_all()) == 1
        assert "上書き" in caplog.text

    def test_same_pattern_different_keyword_is_kept(self) -> None:
        registry = StepRegistry()
        handler = DummyHandler()
        registry.register(handler, _info("open", "Given", r"page is opened"))
        registry.register(handler, _info("open", "When", r"page is opened"))

        assert len(registry.list_all()) == 2


# ---------------------------------------------------------------------------
# match テスト
# ---------------------------------------------------------------------------

class TestStepRegistryMatch:
    """match() / match_line() のテスト。"""

    def test_named_groups_are_captured(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Given", r'URL "(?P<value>.*)" is opened'))

        step = registry.match("Given", 'URL "http://test" is opened')

        assert step.info.name == "open"
        assert step.arguments == {"value": "http://test"}

    def test_full_match_required(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Given", r"page is opened"))

        with pytest.raises(StepNotFoundError):
            registry.match("Given", "page is opened now")

    def test_keyword_must_match(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Given", r"page is opened"))

        with pytest.raises(StepNotFoundError, match="一致するステップがありません"):
            registry.match("Then", "page is opened")

    @pytest.mark.parametrize("keyword", ["And", "But", "*"])
    def test_conjunctions_match_any_keyword(self, keyword: str) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Then", r"page is opened"))

        assert registry.match(keyword, "page is opened").info.name == "open"

    def test_conjunction_same_handler_is_not_ambiguous(self) -> None:
        registry = StepRegistry()
        handler = DummyHandler()
        registry.register(handler, _info("open", "Given", r"page is opened"))
        registry.register(handler, _info("open", "When", r"page is opened"))

        assert registry.match("And", "page is opened").handler is handler

    def test_ambiguous(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("a", "Then", r"page is .*"))
        registry.register(DummyHandler(), _info("b", "Then", r".* is opened"))

        with pytest.raises(AmbiguousStepError, match="複数のステップ"):
            registry.match("Then", "page is opened")

    def test_match_line(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(), _info("open", "Given", r"page is opened"))

        assert registry.match_line("  Given page is opened  ").info.name == "open"

    def test_parse_params_converts_types(self) -> None:
        registry = StepRegistry()
        registry.register(DummyHandler(CountParams), _info("count", "Then", r"(?P<count>\w+) items"))

        assert registry.match("Then", "3 items").parse_params() == CountParams(count=3)
        with pytest.raises(ValidationError):
            registry.match("Then", "three items").parse_params()


class TestSplitStepLine:
    """split_step_line のテスト。"""

    def test_split(self) -> None:
        assert split_step_line('Then page title should be "Top"') == ("Then", 'page title should be "Top"')

    def test_missing_keyword(self) -> None:
        with pytest.raises(ValueError, match="キーワード"):
            split_step_line("page title should be")


# ---------------------------------------------------------------------------
# execute / list_all テスト
# ---------------------------------------------------------------------------

class TestStepRegistryExecute:
    """execute() と list_all() のテスト。"""

    async def test_execute_passes_validated_params(self) -> None:
        registry = StepRegistry()
        handler = DummyHandler(CountParams)
        registry.register(handler, _info("count", "Then", r"(?P<count>\d+) items"))
        context = StepContext()
        driver = object()

        await registry.execute(driver, "Then", "5 items", context)

        assert handler.calls == [(driver, CountParams(count=5), context)]

    async def test_execute_default_context(self) -> None:
        registry = StepRegistry()
        handler = DummyHandler()
        registry.register(handler, _info("open", "Given", r"page is opened"))

        await registry.execute(object(), "Given", "page is opened")

        assert isinstance(handler.calls[0][2], StepContext)

    def test_list_all_sorted(self) -> None:
        registry = StepRegistry()
        handler = DummyHandler()
        registry.register(handler, _info("zeta", "Then", r"z", category="b"))
        registry.register(handler, _info("alpha", "When", r"a2", category="a"))
        registry.register(handler, _info("alpha", "Given", r"a1", category="a"))

        infos = registry.list_all()

        assert [(i.name, i.keyword) for i in infos] == [
            ("alpha", "Given"), ("alpha", "When"), ("zeta", "Then"),
        ]
