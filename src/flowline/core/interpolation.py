"""
どこで: `src/flowline/core/interpolation.py`。
何を: 線上の位置 step に対する線幅・色の補間戦略（線形/ユーザー関数）を定義する。
なぜ: 設定時に戦略を 1 度だけ確定させ、セグメントごとの描画では呼び出すだけにするため。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .color import BLACK, RGBA, as_string, format_number, round_half_up

_logger = logging.getLogger(__name__)

# (feature, step) -> 値。step は 0=始点, 1=終点（範囲外も許容）。
StepFunction = Callable[[Any, float], Any]


@dataclass(frozen=True, slots=True)
class LinearWidth:
    """始点幅から終点幅への線形補間。"""

    start: float
    end: float | None = None

    def at(self, feature: Any, step: float) -> float:
        end = self.end if self.end is not None else self.start
        return self.start + (end - self.start) * step


@dataclass(frozen=True, slots=True)
class LinearColor:
    """始点色から終点色への成分ごとの線形補間。

    Notes
    -----
    r/g/b は四捨五入（0.5 切り上げ）で整数化し、alpha は丸めない。
    step は clamp しないため、[0, 1] 外では外挿になる。
    """

    start: RGBA
    end: RGBA | None = None

    def at(self, feature: Any, step: float) -> str:
        c0 = self.start
        c1 = self.end if self.end is not None else self.start
        r = round_half_up(c0[0] + (c1[0] - c0[0]) * step)
        g = round_half_up(c0[1] + (c1[1] - c0[1]) * step)
        b = round_half_up(c0[2] + (c1[2] - c0[2]) * step)
        a = c0[3] + (c1[3] - c0[3]) * step
        return f"rgba({r},{g},{b},{format_number(a)})"


@dataclass(frozen=True, slots=True)
class CustomFunction:
    """ユーザー関数へ補間を完全に委譲する。"""

    fn: StepFunction

    def at(self, feature: Any, step: float) -> Any:
        return self.fn(feature, step)


@dataclass(frozen=True, slots=True)
class CustomColor:
    """ユーザー関数の戻り値（color-like）を色文字列へ変換して返す。

    解釈できない戻り値は不透明な黒になる。
    """

    fn: StepFunction

    def at(self, feature: Any, step: float) -> str:
        value = self.fn(feature, step)
        try:
            return as_string(value)
        except ValueError:
            _logger.debug("色関数の戻り値を解釈できないため黒を使います: %r", value)
            return as_string(BLACK)


WidthInterpolation = LinearWidth | CustomFunction
ColorInterpolation = LinearColor | CustomColor


__all__ = [
    "ColorInterpolation",
    "CustomColor",
    "CustomFunction",
    "LinearColor",
    "LinearWidth",
    "StepFunction",
    "WidthInterpolation",
]
