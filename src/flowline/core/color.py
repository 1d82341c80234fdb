"""
どこで: `src/flowline/core/color.py`。
何を: color-like 値（文字列/配列）と RGBA タプルの相互変換を提供する。
なぜ: スタイル設定と描画コンテキストで同じ色表現を共有するため。
"""

from __future__ import annotations

import math
import re
from typing import Any, Sequence

import numpy as np
from PIL import ImageColor

# (r, g, b) は 0..255 の整数、alpha は 0..1 の float。
RGBA = tuple[int, int, int, float]

BLACK: RGBA = (0, 0, 0, 1.0)

_NUM = r"([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
_RGB_FUNC = re.compile(
    rf"^rgba?\(\s*{_NUM}\s*,\s*{_NUM}\s*,\s*{_NUM}\s*(?:,\s*{_NUM}\s*)?\)$",
    re.IGNORECASE,
)


def round_half_up(value: float) -> int:
    """0.5 を切り上げる丸め（`round()` の偶数丸めを避ける）。"""
    return int(math.floor(float(value) + 0.5))


def _clamp(value: float, lo: float, hi: float) -> float:
    return lo if value < lo else hi if value > hi else value


def _normalize(r: float, g: float, b: float, a: float) -> RGBA:
    values = (float(r), float(g), float(b), float(a))
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"色成分は有限である必要がある: {values!r}")
    return (
        int(_clamp(round_half_up(values[0]), 0, 255)),
        int(_clamp(round_half_up(values[1]), 0, 255)),
        int(_clamp(round_half_up(values[2]), 0, 255)),
        float(_clamp(values[3], 0.0, 1.0)),
    )


def _parse_string(text: str) -> RGBA:
    s = text.strip()
    if not s:
        raise ValueError("空文字列は色として解釈できない")

    m = _RGB_FUNC.match(s)
    if m is not None:
        r, g, b, a = m.groups()
        return _normalize(float(r), float(g), float(b), 1.0 if a is None else float(a))

    # #rgb / #rrggbbaa / 名前付き色 / hsl() は Pillow に委譲する。
    parsed = ImageColor.getrgb(s)
    if len(parsed) == 4:
        return _normalize(parsed[0], parsed[1], parsed[2], parsed[3] / 255.0)
    return _normalize(parsed[0], parsed[1], parsed[2], 1.0)


def as_rgba(value: Any) -> RGBA:
    """color-like 値を正規化済み RGBA タプルへ変換して返す。

    Parameters
    ----------
    value : Any
        `"#f00"`, `"rgba(255,0,0,0.5)"`, `"red"` のような文字列、
        または 3/4 要素の数値シーケンス（alpha 省略時は 1.0）。

    Returns
    -------
    RGBA
        `(r, g, b, a)`。r/g/b は 0..255 に丸め込み、a は 0..1 に clamp する。

    Raises
    ------
    ValueError
        解釈できない値の場合。
    """
    if isinstance(value, str):
        return _parse_string(value)
    if value is None or isinstance(value, (bytes, bytearray)):
        raise ValueError(f"色として解釈できない値: {value!r}")

    try:
        arr = np.asarray(value, dtype=np.float64).ravel()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"色として解釈できない値: {value!r}") from exc
    if arr.size == 3:
        return _normalize(arr[0], arr[1], arr[2], 1.0)
    if arr.size == 4:
        return _normalize(arr[0], arr[1], arr[2], arr[3])
    raise ValueError(f"色は RGB または RGBA の長さである必要がある: {value!r}")


def format_number(value: float) -> str:
    """色文字列向けに数値を最短表記へ変換して返す（1.0 -> "1"）。"""
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def as_string(value: str | Sequence[float]) -> str:
    """color-like 値を描画コンテキストへ渡せる文字列にして返す。

    Notes
    -----
    文字列はそのまま返す。配列は `rgba(r,g,b,a)` 形式に変換する。
    """
    if isinstance(value, str):
        return value
    r, g, b, a = as_rgba(value)
    return f"rgba({r},{g},{b},{format_number(a)})"


def rgba_to_unit(color: RGBA) -> tuple[float, float, float, float]:
    """0..255 の RGBA を 0..1 float の RGBA に変換して返す。"""
    r, g, b, a = color
    return float(r) / 255.0, float(g) / 255.0, float(b) / 255.0, float(a)


__all__ = [
    "BLACK",
    "RGBA",
    "as_rgba",
    "as_string",
    "format_number",
    "rgba_to_unit",
    "round_half_up",
]
