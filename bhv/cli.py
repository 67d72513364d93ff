"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

bhv コマンドとして以下のサブコマンドを提供する:
  - init: 設定ファイル（bhv.yaml）テンプレート生成
  - list-steps: 登録済みステップ文言の一覧
  - match: ステップ文言がどのステップに解決されるかを表示
  - config: 有効な設定値の表示
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "bhv — 振る舞いテスト用ステップ定義ツール\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="デバッグログを出力する"),
) -> None:
    """共通オプション。"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(message)s")


_CONFIG_TEMPLATE = (
    "# bhv 設定\n"
    "base_url: http://localhost:3000\n"
    "assert_timeout_ms: 5000\n"
    "poll_interval_ms: 100\n"
)


# ---------------------------------------------------------------------------
# init コマンド
# ---------------------------------------------------------------------------

@app.command()
def init(
    project_dir: Path = typer.Argument(
        Path("."), help="プロジェクトディレクトリ（デフォルト: カレント）",
    ),
) -> None:
    """設定ファイルテンプレート（bhv.yaml）を生成する。既存ファイルは上書きしない。"""
    try:
        project_dir.mkdir(parents=True, exist_ok=True)
        config_path = project_dir / "bhv.yaml"
        if config_path.exists():
            typer.echo(f"設定ファイルは既に存在します: {config_path}")
            return
        config_path.write_text(_CONFIG_TEMPLATE, encoding="utf-8")
        typer.echo(f"設定ファイルを生成しました: {config_path.resolve()}")
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-steps コマンド
# ---------------------------------------------------------------------------

@app.command("list-steps")
def list_steps() -> None:
    """登録済み全ステップ文言の一覧を表示する。"""
    from .steps import create_default_registry

    registry = create_default_registry()
    all_steps = registry.list_all()

    # カテゴリごとにグループ化して表示
    categories: dict[str, list] = {}
    for info in all_steps:
        categories.setdefault(info.category, []).append(info)

    for category, steps in sorted(categories.items()):
        typer.echo(f"\n[{category}]")
        for step in steps:
            typer.echo(f"  {step.keyword:5s} {step.pattern}")
            typer.echo(f"        {step.name}: {step.description}")

    typer.echo(f"\n合計: {len(all_steps)} 文言 / {len(registry.names)} ステップ")


# ---------------------------------------------------------------------------
# match コマンド
# ---------------------------------------------------------------------------

@app.command()
def match(
    line: str = typer.Argument(..., help='ステップ文言（例: \'Then page title should be "Top"\'）'),
) -> None:
    """ステップ文言がどのステップに解決されるかと、捕捉引数を表示する。"""
    from .steps import create_default_registry

    registry = create_default_registry()
    try:
        step = registry.match_line(line)
        params = step.parse_params()
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"ステップ: {step.info.name}（{step.info.keyword} {step.info.pattern}）")
    for key, value in params.model_dump(mode="json").items():
        typer.echo(f"  {key} = {value!r}")


# ---------------------------------------------------------------------------
# config コマンド
# ---------------------------------------------------------------------------

@app.command("config")
def show_config(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="設定ファイル（省略時はカレントの bhv.yaml）",
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="ベース URL を上書き"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="継続チェックの最大待機時間（ミリ秒）"),
) -> None:
    """環境変数・設定ファイル・引数を反映した有効な設定を表示する。"""
    from .core.config import apply_overrides, load_config

    try:
        config = load_config(config_file)
        apply_overrides(config, base_url=base_url, assert_timeout_ms=timeout)
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    for key, value in config.to_dict().items():
        typer.echo(f"{key}: {value}")


if __name__ == "__main__":
    app()
