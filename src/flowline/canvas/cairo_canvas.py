"""
どこで: `src/flowline/canvas/cairo_canvas.py`。
何を: pycairo の Context を 2D canvas 相当の DrawContext として扱うアダプタを提供する。
なぜ: canvas 前提の描画手続き（パス保持・文字列スタイル）を cairo の surface（PNG/SVG/PDF）へそのまま流すため。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cairo

from flowline.core.color import BLACK, RGBA, as_rgba, as_string, rgba_to_unit

_logger = logging.getLogger(__name__)

_LINE_CAPS = {
    "butt": cairo.LINE_CAP_BUTT,
    "round": cairo.LINE_CAP_ROUND,
    "square": cairo.LINE_CAP_SQUARE,
}
_LINE_JOINS = {
    "miter": cairo.LINE_JOIN_MITER,
    "round": cairo.LINE_JOIN_ROUND,
    "bevel": cairo.LINE_JOIN_BEVEL,
}


@dataclass(slots=True)
class _CanvasAttrs:
    line_width: float = 1.0
    line_cap: str = "butt"
    line_join: str = "miter"
    stroke_rgba: RGBA = BLACK
    fill_rgba: RGBA = BLACK


class CairoCanvas:
    """cairo.Context を包む DrawContext 実装。

    Notes
    -----
    - `stroke()` / `fill()` は現在のパスを保持する（cairo の *_preserve を使う）。
    - 解釈できないスタイル文字列や未知の線端名は無視し、直前の値を維持する。
    - `save()` / `restore()` は cairo 側の状態スタックと同期して属性を退避・復元する。
    """

    def __init__(self, cairo_ctx: cairo.Context) -> None:
        self._ctx = cairo_ctx
        self._attrs = _CanvasAttrs()
        self._stack: list[_CanvasAttrs] = []
        self._apply_attrs()

    @property
    def cairo_context(self) -> cairo.Context:
        return self._ctx

    def _apply_attrs(self) -> None:
        a = self._attrs
        self._ctx.set_line_width(a.line_width)
        self._ctx.set_line_cap(_LINE_CAPS[a.line_cap])
        self._ctx.set_line_join(_LINE_JOINS[a.line_join])

    # ── attributes ───────────────────────────────────────────────────────
    @property
    def line_width(self) -> float:
        return self._attrs.line_width

    @line_width.setter
    def line_width(self, value: float) -> None:
        try:
            width = float(value)
        except (TypeError, ValueError):
            return
        # canvas と同様に 0 以下・非有限値は無視する。
        if not width > 0.0 or width == float("inf"):
            return
        self._attrs.line_width = width
        self._ctx.set_line_width(width)

    @property
    def line_cap(self) -> str:
        return self._attrs.line_cap

    @line_cap.setter
    def line_cap(self, value: str) -> None:
        if value not in _LINE_CAPS:
            return
        self._attrs.line_cap = value
        self._ctx.set_line_cap(_LINE_CAPS[value])

    @property
    def line_join(self) -> str:
        return self._attrs.line_join

    @line_join.setter
    def line_join(self, value: str) -> None:
        if value not in _LINE_JOINS:
            return
        self._attrs.line_join = value
        self._ctx.set_line_join(_LINE_JOINS[value])

    @property
    def stroke_style(self) -> str:
        return as_string(self._attrs.stroke_rgba)

    @stroke_style.setter
    def stroke_style(self, value: str) -> None:
        rgba = self._parse_style(value)
        if rgba is not None:
            self._attrs.stroke_rgba = rgba

    @property
    def fill_style(self) -> str:
        return as_string(self._attrs.fill_rgba)

    @fill_style.setter
    def fill_style(self, value: str) -> None:
        rgba = self._parse_style(value)
        if rgba is not None:
            self._attrs.fill_rgba = rgba

    @staticmethod
    def _parse_style(value: object) -> RGBA | None:
        try:
            return as_rgba(value)
        except ValueError:
            _logger.debug("解釈できないスタイルを無視します: %r", value)
            return None

    # ── state ────────────────────────────────────────────────────────────
    def save(self) -> None:
        a = self._attrs
        self._stack.append(
            _CanvasAttrs(a.line_width, a.line_cap, a.line_join, a.stroke_rgba, a.fill_rgba)
        )
        self._ctx.save()

    def restore(self) -> None:
        if not self._stack:
            return
        self._attrs = self._stack.pop()
        self._ctx.restore()

    # ── path ─────────────────────────────────────────────────────────────
    def begin_path(self) -> None:
        self._ctx.new_path()

    def move_to(self, x: float, y: float) -> None:
        self._ctx.move_to(float(x), float(y))

    def line_to(self, x: float, y: float) -> None:
        if not self._ctx.has_current_point():
            self._ctx.move_to(float(x), float(y))
            return
        self._ctx.line_to(float(x), float(y))

    def stroke(self) -> None:
        self._ctx.set_source_rgba(*rgba_to_unit(self._attrs.stroke_rgba))
        self._ctx.stroke_preserve()

    def fill(self) -> None:
        self._ctx.set_source_rgba(*rgba_to_unit(self._attrs.fill_rgba))
        self._ctx.fill_preserve()


__all__ = ["CairoCanvas"]
