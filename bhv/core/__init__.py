# コアモジュール
# ポーリングアサーション、リスト包含チェック、設定、ドライバ抽象を提供

from .behavior import AssertionBehavior
from .config import BhvConfig, load_config
from .driver import DriverService, ListWrapper, PlaywrightDriverService
from .errors import (
    AmbiguousStepError,
    AssertionFailure,
    StepNotFoundError,
    TableError,
    TimeoutExceeded,
)
from .lists import contains_all, contains_in_order
from .polling import (
    should_become,
    should_become_async,
    should_become_bool,
    should_become_bool_async,
)

__all__ = [
    "AmbiguousStepError",
    "AssertionBehavior",
    "AssertionFailure",
    "BhvConfig",
    "DriverService",
    "ListWrapper",
    "PlaywrightDriverService",
    "StepNotFoundError",
    "TableError",
    "TimeoutExceeded",
    "contains_all",
    "contains_in_order",
    "load_config",
    "should_become",
    "should_become_async",
    "should_become_bool",
    "should_become_bool_async",
]
