"""
どこで: `src/flowline/core/arrow.py`。
何を: 線端の矢印指定（始点/なし/終点/両端）を列挙型として定義する。
なぜ: 不正なコードを描画側へ持ち込まず、生成時点で「なし」に正規化するため。
"""

from __future__ import annotations

import re
from enum import IntEnum

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ArrowMode(IntEnum):
    """矢印を描く線端。"""

    START = -1
    NONE = 0
    END = 1
    BOTH = 2

    @classmethod
    def parse(cls, value: object) -> "ArrowMode":
        """任意の値を ArrowMode に変換して返す。

        Parameters
        ----------
        value : object
            整数、整数文字列（"1" など）、float（切り捨て）を受け付ける。

        Returns
        -------
        ArrowMode
            範囲外・解釈不能な値は `ArrowMode.NONE`。
        """
        if isinstance(value, cls):
            return value
        if value is None or isinstance(value, bool):
            return cls.NONE
        if isinstance(value, str):
            # 先頭の整数部だけを読む（"1.5" -> 1, "2px" -> 2）。
            m = _LEADING_INT.match(value)
            if m is None:
                return cls.NONE
            code = int(m.group(1))
        else:
            try:
                code = int(value)  # type: ignore[call-overload]
            except (TypeError, ValueError, OverflowError):
                return cls.NONE
        try:
            return cls(code)
        except ValueError:
            return cls.NONE

    @property
    def at_start(self) -> bool:
        return self in (ArrowMode.START, ArrowMode.BOTH)

    @property
    def at_end(self) -> bool:
        return self in (ArrowMode.END, ArrowMode.BOTH)


__all__ = ["ArrowMode"]
