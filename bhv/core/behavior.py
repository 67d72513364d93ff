"""
アサーション種別 — be / be not / become / become not

自然言語のステップ文言から一度だけ解決し、以降はコア内部で
文字列を再解析しない。
"""

from __future__ import annotations

import enum


class AssertionBehavior(str, enum.Enum):
    """アサーションの種別（即時/継続 × 肯定/否定）。

    値はステップ文言中の表記と一致させてあるため、
    Pydantic モデルのフィールド型としてそのまま検証に使える。
    """

    BE = "be"
    BE_NOT = "be not"
    BECOME = "become"
    BECOME_NOT = "become not"

    @property
    def is_negated(self) -> bool:
        """否定系（be not / become not）なら True。"""
        return self in (AssertionBehavior.BE_NOT, AssertionBehavior.BECOME_NOT)

    @property
    def is_eventual(self) -> bool:
        """継続チェック（become / become not）なら True。"""
        return self in (AssertionBehavior.BECOME, AssertionBehavior.BECOME_NOT)

    @classmethod
    def parse(cls, text: str) -> AssertionBehavior:
        """文言からアサーション種別を解決する。

        前後の空白と連続空白を正規化し、大文字小文字を区別しない。

        Args:
            text: "be" / "be not" / "become" / "become not" のいずれか

        Returns:
            対応する AssertionBehavior

        Raises:
            ValueError: 未知の文言の場合
        """
        normalized = " ".join(text.split()).lower()
        for member in cls:
            if member.value == normalized:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"未知のアサーション種別です: '{text}'（有効値: {choices}）")

    @classmethod
    def of(cls, *, negated: bool, eventual: bool) -> AssertionBehavior:
        """極性とモードの組み合わせから種別を返す。"""
        if eventual:
            return cls.BECOME_NOT if negated else cls.BECOME
        return cls.BE_NOT if negated else cls.BE
