"""
どこで: `src/flowline/core/renderer.py`。
何を: 分割済みセグメント列を、補間した線幅・色で描画コンテキストへストロークし、線端に矢印を描く。
なぜ: ホストの描画コールバックから呼べる、状態を持たない描画手続きとして切り出すため。
"""

from __future__ import annotations

import contextlib
import logging
import math
from collections.abc import Iterator
from typing import Any, Protocol

import numpy as np

from .arrow import ArrowMode
from .color import round_half_up
from .render_state import LINE_STRING, DrawContext, GeometryLike, RenderState
from .runtime_config import RuntimeConfig, packaged_runtime_config, runtime_config
from .segmented_line import SegmentedLine, split_into

_logger = logging.getLogger(__name__)

DEFAULT_ARROW_LENGTH = 16.0
DEFAULT_ARROW_MIN_HALF_WIDTH = 8.0


class FlowStyle(Protocol):
    """render_flow_line が参照するスタイル側の契約。"""

    @property
    def visible(self) -> bool: ...

    @property
    def line_cap(self) -> str: ...

    def get_arrow(self) -> ArrowMode: ...

    def get_width(self, feature: Any, step: float) -> float: ...

    def get_color(self, feature: Any, step: float) -> str: ...


@contextlib.contextmanager
def saved_state(ctx: DrawContext) -> Iterator[DrawContext]:
    """`save()` してから本体を実行し、どの経路で抜けても `restore()` する。"""
    ctx.save()
    try:
        yield ctx
    finally:
        ctx.restore()


def full_pixel_coordinates(
    pixels: np.ndarray,
    geometry: GeometryLike,
    resolution: float,
    pixel_ratio: float,
) -> np.ndarray:
    """表示範囲で切り取られる前の、ジオメトリ全体のピクセル座標を再構成する。

    Parameters
    ----------
    pixels : np.ndarray
        ホストが渡したピクセル座標 (N,2)。先頭点は元ジオメトリの先頭点に対応する前提。
    geometry : GeometryLike
        モデル座標系の元ジオメトリ。
    resolution : float
        1 ピクセルあたりのモデル単位。
    pixel_ratio : float
        デバイスピクセル比。

    Returns
    -------
    np.ndarray
        元ジオメトリ全頂点のピクセル座標 (M,2)。再構成できない入力では `pixels` をそのまま返す。

    Notes
    -----
    モデル座標の y 軸は上向き、ピクセル座標の y 軸は下向きとして扱う。
    """
    model = np.asarray(geometry.get_coordinates(), dtype=np.float64)
    if pixels.shape[0] == 0 or model.ndim != 2 or model.shape[0] == 0 or model.shape[1] < 2:
        return pixels
    resolution = float(resolution)
    if resolution == 0.0 or not np.isfinite(resolution):
        return pixels

    a = float(pixel_ratio) / resolution
    dx = pixels[0, 0] - model[0, 0] * a
    dy = pixels[0, 1] + model[0, 1] * a
    out = np.empty((model.shape[0], 2), dtype=np.float64)
    out[:, 0] = dx + model[:, 0] * a
    out[:, 1] = dy - model[:, 1] * a
    return out


def arrow_segment_counts(
    segments: SegmentedLine,
    arrow: ArrowMode,
    *,
    arrow_length: float = DEFAULT_ARROW_LENGTH,
) -> tuple[int, int]:
    """矢印が占有するセグメント数 (始点側, 終点側) を返す。

    Notes
    -----
    先頭セグメントの長さを全セグメントの代表値とみなし、
    `round(arrow_length / 先頭セグメント長)` 個を矢印側に割り当てる。
    先頭セグメント長が 0 の場合は矢印を割り当てない。
    """
    if arrow == ArrowMode.NONE or len(segments) == 0:
        return 0, 0
    first = segments.segment_length(0)
    if first <= 0.0:
        return 0, 0

    consumed = round_half_up(float(arrow_length) / first)
    length0 = consumed if arrow.at_start else 0
    length1 = consumed if arrow.at_end else 0
    return length0, length1


def draw_arrow(
    ctx: DrawContext,
    tip: np.ndarray,
    toward: np.ndarray,
    width: float,
    *,
    arrow_length: float = DEFAULT_ARROW_LENGTH,
    min_half_width: float = DEFAULT_ARROW_MIN_HALF_WIDTH,
) -> None:
    """tip を頂点とする塗りつぶし三角形を、現在の fill_style で描く。

    Parameters
    ----------
    tip : np.ndarray
        矢印の先端（線の端点）。
    toward : np.ndarray
        線の内側にある点。tip からこの点への向きが矢印の軸になる。
    width : float
        端点での線幅 [device px]。底辺の半幅は `max(min_half_width, width / 2)`。
    """
    x0 = float(tip[0])
    y0 = float(tip[1])
    length = math.hypot(x0 - float(toward[0]), y0 - float(toward[1]))
    if length <= 0.0:
        return
    dx = (x0 - float(toward[0])) / length
    dy = (y0 - float(toward[1])) / length
    half = max(float(min_half_width), float(width) / 2.0)
    base_x = x0 - arrow_length * dx
    base_y = y0 - arrow_length * dy

    ctx.begin_path()
    ctx.move_to(x0, y0)
    ctx.line_to(base_x + half * dy, base_y - half * dx)
    ctx.line_to(base_x - half * dy, base_y + half * dx)
    ctx.line_to(x0, y0)
    ctx.fill()


def _as_pixels(coords: Any) -> np.ndarray:
    v = np.asarray(coords, dtype=np.float64)
    if v.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if v.ndim != 2 or v.shape[1] < 2:
        raise ValueError("ピクセル座標は shape (N,2) の 2 次元配列である必要がある")
    return v[:, :2]


def _device_width(value: Any, pixel_ratio: float) -> float | None:
    """線幅を device px に変換する。数値にできない値は None。"""
    try:
        return float(value) * pixel_ratio
    except (TypeError, ValueError):
        _logger.debug("線幅を解釈できないため設定を省きます: %r", value)
        return None


def _render_config() -> RuntimeConfig:
    """描画用の設定を返す。config.yaml が壊れていても同梱既定値で描き続ける。"""
    try:
        return runtime_config()
    except (OSError, RuntimeError, ValueError) as exc:
        _logger.debug("config.yaml を読めないため同梱既定値で描画します: %s", exc)
        return packaged_runtime_config()


def render_flow_line(
    coords: Any,
    state: RenderState,
    style: FlowStyle,
    *,
    config: RuntimeConfig | None = None,
) -> None:
    """可変幅・可変色の線を state.context へ描画する。

    Parameters
    ----------
    coords : array-like
        ホストが投影済みのピクセル座標 (N,2)。
    state : RenderState
        描画コンテキストと元ジオメトリなど。
    style : FlowStyle
        線幅・色・矢印・線端形状の提供元。
    config : RuntimeConfig or None, optional
        分割数や矢印寸法。None なら `runtime_config()`（読めなければ同梱既定値）。

    Notes
    -----
    - LineString 以外のジオメトリは何も描かない。
    - セグメント k の step は `k / セグメント数`。終点側の最後のセグメントは
      ストロークしない（両端で step がちょうど 0/1 にならないのはこの数え方による）。
    - 描画属性の変更は save/restore で囲み、呼び出し後に持ち越さない。
    - 数値にできない線幅は設定を省き、直前の線幅のまま描く。
    """
    geometry = state.geometry
    if geometry is None or geometry.get_type() != LINE_STRING:
        return

    pixels = _as_pixels(coords)
    if not style.visible:
        pixels = full_pixel_coordinates(pixels, geometry, state.resolution, state.pixel_ratio)
    if pixels.shape[0] < 2:
        return

    cfg = config if config is not None else _render_config()
    segments = split_into(pixels, cfg.segment_count, cfg.min_segment_length)
    nb = len(segments)
    length0, length1 = arrow_segment_counts(
        segments,
        style.get_arrow(),
        arrow_length=cfg.arrow_length,
    )

    ctx = state.context
    feature = state.feature
    pixel_ratio = float(state.pixel_ratio)

    with saved_state(ctx):
        ctx.line_join = "round"
        ctx.line_cap = style.line_cap or "butt"

        draw_start = 0 < length0 < nb
        draw_end = 0 < length1 < nb
        if draw_start or draw_end:
            ctx.line_cap = "butt"
            if draw_start:
                ctx.fill_style = style.get_color(feature, 0)
                draw_arrow(
                    ctx,
                    segments.segment(0)[0],
                    segments.segment(length0)[-1],
                    _device_width(style.get_width(feature, 0), pixel_ratio) or 0.0,
                    arrow_length=cfg.arrow_length,
                    min_half_width=cfg.arrow_min_half_width,
                )
            if draw_end:
                ctx.fill_style = style.get_color(feature, 1)
                g0 = segments.segment(nb - 1)
                g1 = segments.segment(nb - 1 - length1)
                draw_arrow(
                    ctx,
                    g0[-1],
                    g1[0],
                    _device_width(style.get_width(feature, 1), pixel_ratio) or 0.0,
                    arrow_length=cfg.arrow_length,
                    min_half_width=cfg.arrow_min_half_width,
                )

        for k in range(length0, nb - length1 - 1):
            step = k / nb
            seg = segments.segment(k)
            width = _device_width(style.get_width(feature, step), pixel_ratio)
            if width is not None:
                ctx.line_width = width
            ctx.stroke_style = style.get_color(feature, step)
            ctx.begin_path()
            ctx.move_to(float(seg[0, 0]), float(seg[0, 1]))
            for x, y in seg[1:]:
                ctx.line_to(float(x), float(y))
                ctx.stroke()


__all__ = [
    "DEFAULT_ARROW_LENGTH",
    "DEFAULT_ARROW_MIN_HALF_WIDTH",
    "FlowStyle",
    "arrow_segment_counts",
    "draw_arrow",
    "full_pixel_coordinates",
    "render_flow_line",
    "saved_state",
]
