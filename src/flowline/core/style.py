"""
どこで: `src/flowline/core/style.py`。
何を: 線に沿って線幅・色を連続的に変化させ、線端に矢印を付ける FlowLine スタイルを定義する。
なぜ: ホストレンダラへ描画コールバックとして渡せる、設定保持と描画の窓口を 1 つにまとめるため。
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Any

from .arrow import ArrowMode
from .color import BLACK, RGBA, as_rgba
from .interpolation import (
    ColorInterpolation,
    CustomColor,
    CustomFunction,
    LinearColor,
    LinearWidth,
    StepFunction,
    WidthInterpolation,
)
from .render_state import RenderState
from .renderer import render_flow_line
from .runtime_config import RuntimeConfig

_logger = logging.getLogger(__name__)


class FlowLine:
    """可変幅・可変色の LineString スタイル。

    Parameters
    ----------
    visible : bool, default True
        True ならホストが渡した（表示範囲の）座標をそのまま使う。
        False なら元ジオメトリ全体のピクセル座標を再構成し、線全体に対する位置で補間する。
    width : float or callable, optional
        始点の線幅、または `(feature, step) -> 線幅` 関数。既定 0。
    width2 : float, optional
        終点の線幅。未指定なら width と同じ（一定幅）。
    arrow : int, default 0
        矢印の位置。-1=始点, 0=なし, 1=終点, 2=両端。範囲外は 0。
    color : color-like or callable, optional
        始点の色、または `(feature, step) -> color-like` 関数。既定は不透明な黒。
    color2 : color-like, optional
        終点の色。未指定なら color と同じ（一定色）。
    line_cap : {"butt", "round"}, optional
        線端形状。既定 "butt"。
    geometry : Any, optional
        ホスト側で解釈するジオメトリ指定。本クラスでは保持のみ。

    Notes
    -----
    設定値の不正はいずれも例外にせず既定値へ落とす（描画ループを止めないため）。
    ヒット判定には関与しない。
    """

    _width_interp: WidthInterpolation
    _color_interp: ColorInterpolation

    def __init__(
        self,
        *,
        visible: bool = True,
        width: float | StepFunction | None = None,
        width2: float | None = None,
        arrow: Any = 0,
        color: Any = None,
        color2: Any = None,
        line_cap: str | None = None,
        geometry: Any = None,
    ) -> None:
        self.geometry = geometry
        self._visible = visible is not False
        self._width = 0.0
        self._width2: float | None = None
        self._width_fn: StepFunction | None = None
        self._color: RGBA = BLACK
        self._color2: RGBA | None = None
        self._color_fn: StepFunction | None = None
        self._line_cap = "butt"
        self._arrow = ArrowMode.NONE

        if callable(width):
            self.set_width_function(width)
        else:
            self.set_width(width)
        self.set_width2(width2)
        if callable(color):
            self.set_color_function(color)
        else:
            self.set_color(color)
        self.set_color2(color2)
        self.set_line_cap(line_cap)
        self.set_arrow(arrow)

    def __repr__(self) -> str:
        return (
            f"FlowLine(width={self._width!r}, width2={self._width2!r}, "
            f"color={self._color!r}, color2={self._color2!r}, "
            f"arrow={int(self._arrow)}, line_cap={self._line_cap!r}, visible={self._visible!r})"
        )

    # ── visible ──────────────────────────────────────────────────────────
    @property
    def visible(self) -> bool:
        return self._visible

    @visible.setter
    def visible(self, value: bool) -> None:
        self._visible = value is not False

    # ── width ────────────────────────────────────────────────────────────
    @property
    def width(self) -> float:
        return self._width

    @property
    def width2(self) -> float | None:
        return self._width2

    def set_width(self, width: float | None) -> None:
        """始点の線幅を設定する（None/0 は 0）。幅関数は解除される。"""
        try:
            self._width = float(width) if width else 0.0
        except (TypeError, ValueError):
            _logger.debug("線幅を解釈できないため 0 を使います: %r", width)
            self._width = 0.0
        self._width_fn = None
        self._refresh_width()

    def set_width2(self, width: float | None) -> None:
        """終点の線幅を設定する。数値以外は「始点と同じ」を意味する None になる。"""
        if isinstance(width, Real) and not isinstance(width, bool):
            self._width2 = float(width)
        else:
            self._width2 = None
        self._refresh_width()

    def set_width_function(self, fn: StepFunction) -> None:
        """`(feature, step) -> 線幅` 関数で補間を置き換える。"""
        self._width_fn = fn
        self._refresh_width()

    def _refresh_width(self) -> None:
        if self._width_fn is not None:
            self._width_interp = CustomFunction(self._width_fn)
        else:
            self._width_interp = LinearWidth(self._width, self._width2)

    def get_width(self, feature: Any, step: float) -> float:
        """step（0=始点, 1=終点）における線幅を返す。"""
        return self._width_interp.at(feature, step)

    # ── color ────────────────────────────────────────────────────────────
    @property
    def color(self) -> RGBA:
        return self._color

    @property
    def color2(self) -> RGBA | None:
        return self._color2

    def set_color(self, color: Any) -> None:
        """始点の色を設定する。解釈できない値は不透明な黒になる。色関数は解除される。"""
        try:
            self._color = as_rgba(color)
        except ValueError:
            _logger.debug("色を解釈できないため黒を使います: %r", color)
            self._color = BLACK
        self._color_fn = None
        self._refresh_color()

    def set_color2(self, color: Any) -> None:
        """終点の色を設定する。解釈できない値は「始点と同じ」を意味する None になる。"""
        if color is None:
            self._color2 = None
        else:
            try:
                self._color2 = as_rgba(color)
            except ValueError:
                _logger.debug("終点色を解釈できないため始点色を使います: %r", color)
                self._color2 = None
        self._refresh_color()

    def set_color_function(self, fn: StepFunction) -> None:
        """`(feature, step) -> color-like` 関数で補間を置き換える。"""
        self._color_fn = fn
        self._refresh_color()

    def _refresh_color(self) -> None:
        if self._color_fn is not None:
            self._color_interp = CustomColor(self._color_fn)
        else:
            self._color_interp = LinearColor(self._color, self._color2)

    def get_color(self, feature: Any, step: float) -> str:
        """step（0=始点, 1=終点）における色を `rgba(r,g,b,a)` 形式で返す。"""
        return self._color_interp.at(feature, step)

    # ── line cap / arrow ─────────────────────────────────────────────────
    @property
    def line_cap(self) -> str:
        return self._line_cap

    def set_line_cap(self, cap: str | None) -> None:
        """線端形状を設定する（"round" 以外は "butt"）。"""
        self._line_cap = "round" if cap == "round" else "butt"

    def get_arrow(self) -> ArrowMode:
        return self._arrow

    def set_arrow(self, n: Any) -> None:
        """矢印の位置を設定する（-1 | 0 | 1 | 2、それ以外は 0）。"""
        arrow = ArrowMode.parse(n)
        if arrow == ArrowMode.NONE and n is not None and str(n).strip() != "0":
            _logger.debug("矢印指定を解釈できないため矢印なしにします: %r", n)
        self._arrow = arrow

    # ── render ───────────────────────────────────────────────────────────
    def renderer(
        self,
        coords: Any,
        state: RenderState,
        *,
        config: RuntimeConfig | None = None,
    ) -> None:
        """ホストの描画コールバック。`render_flow_line` へ委譲する。"""
        render_flow_line(coords, state, self, config=config)

    __call__ = renderer


__all__ = ["FlowLine"]
