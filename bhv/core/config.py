"""
設定 — 設定ファイル・環境変数・CLI 引数からの読み込み

CLI 引数 > 環境変数 > 設定ファイル（bhv.yaml）> デフォルト値 の優先順位で適用される。

環境変数一覧:
  BHV_BASE_URL        : アプリケーションのベース URL（デフォルト: 空）
  BHV_ASSERT_TIMEOUT  : 継続チェックの最大待機時間（ミリ秒、デフォルト: 5000）
  BHV_POLL_INTERVAL   : 継続チェックのポーリング間隔（ミリ秒、デフォルト: 100）
  BHV_VIEWPORT_WIDTH  : ビューポート幅（デフォルト: 1280）
  BHV_VIEWPORT_HEIGHT : ビューポート高さ（デフォルト: 720）
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .polling import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "bhv.yaml"

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_BASE_URL = "BHV_BASE_URL"
_ENV_ASSERT_TIMEOUT = "BHV_ASSERT_TIMEOUT"
_ENV_POLL_INTERVAL = "BHV_POLL_INTERVAL"
_ENV_VIEWPORT_WIDTH = "BHV_VIEWPORT_WIDTH"
_ENV_VIEWPORT_HEIGHT = "BHV_VIEWPORT_HEIGHT"

# 整数値の設定キー → (環境変数, 許容する最小値)
# ポーリング間隔とビューポートは 0 を許容しない
_INT_FIELDS = {
    "assert_timeout_ms": (_ENV_ASSERT_TIMEOUT, 0),
    "poll_interval_ms": (_ENV_POLL_INTERVAL, 1),
    "viewport_width": (_ENV_VIEWPORT_WIDTH, 1),
    "viewport_height": (_ENV_VIEWPORT_HEIGHT, 1),
}


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class BhvConfig:
    """ステップ実行時の設定。

    Attributes:
        base_url: アプリケーションのベース URL（相対 URL の解決に使用）
        assert_timeout_ms: become / become not の最大待機時間（ミリ秒）
        poll_interval_ms: become / become not のポーリング間隔（ミリ秒）
        viewport_width: ビューポート幅
        viewport_height: ビューポート高さ
    """

    base_url: str = ""
    assert_timeout_ms: int = DEFAULT_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_INTERVAL_MS
    viewport_width: int = 1280
    viewport_height: int = 720

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# 設定ファイルからの読み込み
# ---------------------------------------------------------------------------

def _parse_int(value: Any, key: str, current: int, minimum: int = 0) -> int:
    """整数に変換する。不正な値や minimum 未満の値は警告を出して current を返す。"""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("%s の値が不正です: %s", key, value)
        return current
    if parsed < minimum:
        logger.warning("%s には %d 以上を指定してください: %s", key, minimum, value)
        return current
    return parsed


def _apply_mapping(config: BhvConfig, data: Mapping[str, Any], source: str) -> None:
    for key, value in data.items():
        if key == "base_url":
            config.base_url = str(value or "")
        elif key in _INT_FIELDS:
            minimum = _INT_FIELDS[key][1]
            setattr(config, key, _parse_int(value, f"{source}:{key}", getattr(config, key), minimum))
        else:
            logger.warning("未知の設定キーを無視します（%s）: %s", source, key)


def load_config_file(config: BhvConfig, path: Path) -> BhvConfig:
    """YAML 設定ファイルの内容を config に適用する。

    Args:
        config: ベースとなる設定
        path: 設定ファイルのパス

    Returns:
        設定ファイルが適用された設定

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: YAML 構文エラー、またはトップレベルがマッピングでない場合
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"設定ファイルが見つかりません: {path}")

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except YAMLError as e:
        line_info = ""
        if hasattr(e, "problem_mark") and e.problem_mark is not None:
            mark = e.problem_mark
            line_info = f" (行 {mark.line + 1}, 列 {mark.column + 1})"
        raise ValueError(f"設定ファイルの YAML 構文エラー{line_info}: {e}") from e

    if data is None:
        return config
    if not isinstance(data, Mapping):
        raise ValueError(f"設定ファイルのトップレベルはマッピングである必要があります: {path}")

    _apply_mapping(config, data, str(path))
    return config


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def apply_env(config: BhvConfig, environ: Optional[Mapping[str, str]] = None) -> BhvConfig:
    """環境変数の値を config に適用する。

    設定されていない環境変数は無視する。
    """
    env = os.environ if environ is None else environ

    if _ENV_BASE_URL in env:
        config.base_url = env[_ENV_BASE_URL]

    for field_name, (env_key, minimum) in _INT_FIELDS.items():
        if env_key in env:
            current = getattr(config, field_name)
            setattr(config, field_name, _parse_int(env[env_key], env_key, current, minimum))

    return config


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BhvConfig:
    """設定ファイルと環境変数から BhvConfig を生成する。

    path が None の場合はカレントディレクトリの bhv.yaml を探し、
    存在すれば読み込む。明示指定されたファイルが存在しない場合はエラーとする。

    Args:
        path: 設定ファイルのパス
        environ: 環境変数（テスト用。None の場合は os.environ）

    Returns:
        読み込んだ設定
    """
    config = BhvConfig()

    if path is not None:
        load_config_file(config, path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        load_config_file(config, Path(DEFAULT_CONFIG_FILE))

    apply_env(config, environ)
    logger.info("設定を読み込みました: %s", config)
    return config


def apply_overrides(config: BhvConfig, **overrides: Any) -> BhvConfig:
    """CLI 引数などの明示指定を config に適用する。

    値が None の項目は上書きしない。
    """
    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise ValueError(f"未知の設定項目です: {key}")
        setattr(config, key, value)
    return config
