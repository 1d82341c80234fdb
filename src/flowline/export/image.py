"""
どこで: `src/flowline/export/image.py`。
何を: FlowLine で装飾した折れ線群を cairo surface へ描き、PNG/SVG/PDF として保存する関数を提供する。
なぜ: ホストレンダラなしでもスタイルの見た目を確認・再生成できる headless 出力を用意するため。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import cairo
import numpy as np

from flowline.canvas.cairo_canvas import CairoCanvas
from flowline.core.color import as_rgba, rgba_to_unit
from flowline.core.render_state import LineString, RenderState
from flowline.core.runtime_config import output_root_dir, runtime_config
from flowline.core.style import FlowLine

_logger = logging.getLogger(__name__)

_SUFFIXES = (".png", ".svg", ".pdf")

# (style, pixel coords) または (style, pixel coords, feature)。
StyledLine = tuple[FlowLine, Any] | tuple[FlowLine, Any, Any]


def _pixel_geometry(pixels: np.ndarray) -> LineString:
    """ピクセル座標（y 下向き）を resolution=1 のモデル座標（y 上向き）として包む。"""
    model = np.empty_like(pixels)
    model[:, 0] = pixels[:, 0]
    model[:, 1] = -pixels[:, 1]
    return LineString(model)


def _as_pixels(coords: Any) -> np.ndarray:
    v = np.asarray(coords, dtype=np.float64)
    if v.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if v.ndim != 2 or v.shape[1] < 2:
        raise ValueError("coords は shape (N,2) の 2 次元配列である必要がある")
    return np.ascontiguousarray(v[:, :2])


def render_lines(
    canvas: CairoCanvas,
    lines: Sequence[StyledLine],
    *,
    pixel_ratio: float = 1.0,
) -> None:
    """折れ線群を順に canvas へ描く。

    Parameters
    ----------
    canvas : CairoCanvas
        描画先。
    lines : Sequence[StyledLine]
        `(style, coords)` または `(style, coords, feature)` の列。
    pixel_ratio : float, default 1.0
        線幅に乗算するデバイスピクセル比。
    """
    for item in lines:
        style = item[0]
        pixels = _as_pixels(item[1])
        feature = item[2] if len(item) > 2 else None
        state = RenderState(
            context=canvas,
            geometry=_pixel_geometry(pixels),
            feature=feature,
            resolution=1.0,
            pixel_ratio=float(pixel_ratio),
        )
        style.renderer(pixels, state)


def _paint_background(ctx: cairo.Context, background_color: Any, size: tuple[float, float]) -> None:
    if background_color is None:
        return
    ctx.save()
    ctx.set_source_rgba(*rgba_to_unit(as_rgba(background_color)))
    ctx.rectangle(0, 0, size[0], size[1])
    ctx.fill()
    ctx.restore()


def export_image(
    lines: Sequence[StyledLine],
    path: str | Path,
    *,
    canvas_size: tuple[int, int],
    background_color: Any = None,
) -> Path:
    """折れ線群を画像として保存する。

    Parameters
    ----------
    lines : Sequence[StyledLine]
        `(style, coords)` または `(style, coords, feature)` の列。coords はピクセル座標。
    path : str or Path
        出力先パス。拡張子で形式を決める（.png / .svg / .pdf）。
    canvas_size : tuple[int, int]
        キャンバス寸法 [px]。
    background_color : color-like, optional
        背景色。None なら透明（PDF/SVG では背景なし）。

    Returns
    -------
    Path
        保存先パス。

    Raises
    ------
    ValueError
        未対応の拡張子、または canvas_size が正でない場合。

    Notes
    -----
    PNG は `export.png.scale` 倍の解像度でラスタライズする。
    """
    _path = Path(path)
    suffix = _path.suffix.lower()
    if suffix not in _SUFFIXES:
        raise ValueError(f"未対応の画像フォーマット: {suffix!r}")

    canvas_w, canvas_h = canvas_size
    if int(canvas_w) <= 0 or int(canvas_h) <= 0:
        raise ValueError("canvas_size は正の (width, height) である必要がある")
    size = (float(canvas_w), float(canvas_h))

    _path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".png":
        scale = float(runtime_config().png_scale)
        surface = cairo.ImageSurface(
            cairo.FORMAT_ARGB32,
            int(round(size[0] * scale)),
            int(round(size[1] * scale)),
        )
        try:
            ctx = cairo.Context(surface)
            ctx.scale(scale, scale)
            _paint_background(ctx, background_color, size)
            render_lines(CairoCanvas(ctx), lines)
            surface.flush()
            surface.write_to_png(str(_path))
        finally:
            surface.finish()
    else:
        if suffix == ".svg":
            surface = cairo.SVGSurface(str(_path), size[0], size[1])
        else:
            surface = cairo.PDFSurface(str(_path), size[0], size[1])
        # 描画途中で例外が出ても surface を閉じ、出力ファイルを確定させる。
        try:
            ctx = cairo.Context(surface)
            _paint_background(ctx, background_color, size)
            render_lines(CairoCanvas(ctx), lines)
        finally:
            surface.finish()

    _logger.info("Saved %s (%d lines)", _path, len(lines))
    return _path


def default_output_path(name: str, suffix: str = ".png") -> Path:
    """出力名に対する既定保存パスを返す。

    Notes
    -----
    パスは `{output_root}/{format}/{name}{suffix}`。
    """
    ext = suffix if suffix.startswith(".") else f".{suffix}"
    return output_root_dir() / ext.lstrip(".").lower() / f"{name}{ext}"


__all__ = ["StyledLine", "default_output_path", "export_image", "render_lines"]
