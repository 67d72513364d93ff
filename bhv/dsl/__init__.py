# DSL モジュール
# ステップに付随する期待値テーブルの解析を提供

from .table import Table, parse_table, table_to_rows

__all__ = ["Table", "parse_table", "table_to_rows"]
