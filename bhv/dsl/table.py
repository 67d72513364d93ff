"""
期待値テーブル — Gherkin 形式のパイプ区切りテーブルの解析

ステップに付随するテーブル（| itemName | のような行）を Table モデルに変換し、
指定列の値を行順のリストとして取り出す。

例::

    | itemName     |
    | Test value 1 |
    | Test value 2 |
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, model_validator

from ..core.errors import TableError


class Table(BaseModel):
    """見出し行とデータ行からなるテーブル。

    Attributes:
        headings: 見出し（列名）のリスト
        rows: データ行のリスト（各行は見出しと同数のセルを持つ）
    """

    headings: list[str]
    rows: list[list[str]] = []

    @model_validator(mode="after")
    def check_shape(self) -> Table:
        if not self.headings:
            raise ValueError("テーブルには少なくとも 1 つの見出しが必要です")
        for index, row in enumerate(self.rows, start=1):
            if len(row) != len(self.headings):
                raise ValueError(
                    f"{index} 行目のセル数 {len(row)} が見出しの数 {len(self.headings)} と一致しません"
                )
        return self

    @classmethod
    def from_rows(cls, headings: list[str], rows: list[list[str]]) -> Table:
        return cls(headings=list(headings), rows=[list(r) for r in rows])

    def column(self, name: str) -> list[str]:
        """指定列の値を行順に返す。

        Raises:
            TableError: 列が存在しない場合
        """
        if name not in self.headings:
            raise TableError(
                f"列 '{name}' がテーブルに存在しません（見出し: {', '.join(self.headings)}）"
            )
        index = self.headings.index(name)
        return [row[index] for row in self.rows]


# ---------------------------------------------------------------------------
# パーサー
# ---------------------------------------------------------------------------

def _split_cells(line: str, line_no: int) -> list[str]:
    """1 行を '|' で分割してセルのリストを返す。

    \\| はリテラルの '|'、\\\\ はリテラルの '\\'、\\n は改行として扱う。
    """
    stripped = line.strip()
    if not stripped.startswith("|"):
        raise TableError(f"{line_no} 行目がテーブル行ではありません: {line!r}")

    cells: list[str] = []
    current: list[str] = []
    body = stripped[1:]
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt == "|":
                current.append("|")
            elif nxt == "\\":
                current.append("\\")
            elif nxt == "n":
                current.append("\n")
            else:
                current.append(ch + nxt)
            i += 2
            continue
        if ch == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    if "".join(current).strip():
        raise TableError(f"{line_no} 行目が '|' で終わっていません: {line!r}")
    return cells


def parse_table(text: str) -> Table:
    """Gherkin 形式のテーブル文字列を Table に変換する。

    1 行目を見出し行として扱い、空行は無視する。

    Args:
        text: パイプ区切りのテーブル文字列

    Returns:
        解析済みの Table

    Raises:
        TableError: 形式が不正な場合（テーブル行以外の行、空テーブル、セル数の不一致）
    """
    parsed: list[list[str]] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        parsed.append(_split_cells(line, line_no))

    if not parsed:
        raise TableError("テーブルが空です")

    try:
        return Table(headings=parsed[0], rows=parsed[1:])
    except ValueError as e:
        raise TableError(f"テーブルの形式が不正です: {e}") from e


def table_to_rows(table: Table, column: Optional[str] = None) -> list[str]:
    """テーブルの 1 列を行順の文字列リストとして取り出す。

    Args:
        table: 対象テーブル
        column: 列名。None の場合は先頭列

    Returns:
        列の値のリスト
    """
    if column is None:
        column = table.headings[0]
    return table.column(column)
