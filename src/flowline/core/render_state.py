"""
どこで: `src/flowline/core/render_state.py`。
何を: ホストレンダラから渡される描画状態（コンテキスト・元ジオメトリ・解像度など）の型を定義する。
なぜ: スタイル側が依存するホスト契約を Protocol として明示し、任意のバックエンドで描けるようにするため。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np

LINE_STRING = "LineString"


@runtime_checkable
class DrawContext(Protocol):
    """2D canvas 相当の描画コンテキスト。

    Notes
    -----
    パスは `stroke()` / `fill()` 後も保持され、`begin_path()` でのみ破棄される。
    スタイル属性は `save()` / `restore()` の対で退避・復元される。
    """

    line_width: float
    line_cap: str
    line_join: str
    stroke_style: str
    fill_style: str

    def save(self) -> None: ...

    def restore(self) -> None: ...

    def begin_path(self) -> None: ...

    def move_to(self, x: float, y: float) -> None: ...

    def line_to(self, x: float, y: float) -> None: ...

    def stroke(self) -> None: ...

    def fill(self) -> None: ...


class GeometryLike(Protocol):
    """ホストが保持する元ジオメトリ（モデル座標系）。"""

    def get_type(self) -> str: ...

    def get_coordinates(self) -> Any: ...


@dataclass(frozen=True, slots=True)
class LineString:
    """モデル座標系の折れ線ジオメトリ。

    Parameters
    ----------
    coordinates : np.ndarray
        shape (N,2) の頂点配列（y は上向き）。
    """

    coordinates: np.ndarray

    def __post_init__(self) -> None:
        coords = np.asarray(self.coordinates, dtype=np.float64)
        if coords.size == 0:
            coords = np.zeros((0, 2), dtype=np.float64)
        if coords.ndim != 2 or coords.shape[1] < 2:
            raise ValueError("coordinates は shape (N,2) の 2 次元配列である必要がある")
        coords.setflags(write=False)
        object.__setattr__(self, "coordinates", coords)

    def get_type(self) -> str:
        return LINE_STRING

    def get_coordinates(self) -> np.ndarray:
        return self.coordinates


@dataclass(frozen=True, slots=True)
class RenderState:
    """1 回の描画呼び出しでホストから渡される状態。

    Parameters
    ----------
    context : DrawContext
        描画先コンテキスト。
    geometry : GeometryLike
        描画中 feature の元ジオメトリ。
    feature : Any
        描画中の feature（補間関数へそのまま渡す）。
    resolution : float
        1 ピクセルあたりのモデル単位。
    pixel_ratio : float
        デバイスピクセル比。線幅に乗算する。
    """

    context: DrawContext
    geometry: GeometryLike
    feature: Any = None
    resolution: float = 1.0
    pixel_ratio: float = 1.0


__all__ = ["DrawContext", "GeometryLike", "LINE_STRING", "LineString", "RenderState"]
