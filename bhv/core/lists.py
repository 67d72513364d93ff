"""
リスト包含チェック — 観測リストが期待値リストを含むかの判定

主な機能:
  - contains_all: 順序を問わない多重集合としての包含
  - contains_in_order: 相対順序を保った部分列としての包含

いずれも入力を変更しない純粋関数で、文字列の値の等価性で比較する。
否定（not contain）は呼び出し側で結果を反転して扱う。
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence


def contains_all(observed: Sequence[str], reference: Sequence[str]) -> bool:
    """reference の全要素が observed に含まれるかを判定する。

    多重集合として比較するため、reference に 2 回現れる値は
    observed にも 2 回以上現れる必要がある。順序と余分な要素は問わない。

    Args:
        observed: 画面から取得した値のリスト
        reference: 期待値のリスト

    Returns:
        全要素が（出現回数を含めて）含まれる場合は True
    """
    missing = Counter(reference) - Counter(observed)
    return not missing


def contains_in_order(observed: Sequence[str], reference: Sequence[str]) -> bool:
    """reference が observed の部分列として順序通りに現れるかを判定する。

    連続している必要はない。左から貪欲に走査し、各要素を走査位置以降で
    最初に一致した位置に割り当てる。割り当て後は走査位置をその次へ進めるため、
    observed の 1 要素が reference の 2 要素に使われることはない。

    Args:
        observed: 画面から取得した値のリスト
        reference: 期待値のリスト（この順序で現れる必要がある）

    Returns:
        順序を保って全要素が見つかった場合は True
    """
    cursor = 0
    for expected in reference:
        while cursor < len(observed) and observed[cursor] != expected:
            cursor += 1
        if cursor >= len(observed):
            return False
        cursor += 1
    return True


def missing_items(observed: Sequence[str], reference: Sequence[str]) -> list[str]:
    """observed に不足している reference の要素を出現順に返す（失敗メッセージ用）。"""
    remaining = Counter(observed)
    missing: list[str] = []
    for item in reference:
        if remaining[item] > 0:
            remaining[item] -= 1
        else:
            missing.append(item)
    return missing
