# src/flowline/core/segmented_line.py
# ポリラインをほぼ等長のセグメント列へ分割するカーネルと、その結果配列のモデル。

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
from numba import njit  # type: ignore[import-untyped]

DEFAULT_SEGMENT_COUNT = 255
DEFAULT_MIN_LENGTH = 2.0

# 分割点から次セグメントの始点を 0.9 だけ戻した位置に置き、継ぎ目の隙間を防ぐ。
RESTART_FACTOR = 0.9


@dataclass(frozen=True, slots=True)
class SegmentedLine:
    """分割済みポリラインを coords/offsets の配列対で表現する。

    Parameters
    ----------
    coords : np.ndarray
        float64 型 shape (V, 2) の頂点配列（全セグメントの頂点を連結したもの）。
    offsets : np.ndarray
        int32 型 shape (S+1,) のセグメント開始インデックス配列。

    Notes
    -----
    配列は writeable=False で保持する。
    segment(0) が線の始点側、segment(-1) が終点側。
    """

    coords: np.ndarray
    offsets: np.ndarray

    def __post_init__(self) -> None:
        """配列形状と整合性を検証し、不変条件を満たす形に固定する。"""
        coords = np.asarray(self.coords)
        offsets = np.asarray(self.offsets)

        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError("coords は shape (V,2) の 2 次元配列である必要がある")
        if coords.dtype != np.float64:
            coords = coords.astype(np.float64, copy=False)

        if offsets.ndim != 1:
            raise ValueError("offsets は 1 次元配列である必要がある")
        if offsets.dtype != np.int32:
            offsets = offsets.astype(np.int32, copy=False)
        if offsets.size == 0:
            raise ValueError("offsets は少なくとも 1 要素を含む必要がある")
        if offsets[0] != 0:
            raise ValueError("offsets[0] は 0 である必要がある")
        if offsets[-1] != coords.shape[0]:
            raise ValueError("offsets[-1] は coords 行数と一致する必要がある")
        if np.any(np.diff(offsets) < 0):
            raise ValueError("offsets は単調非減少である必要がある")

        coords.setflags(write=False)
        offsets.setflags(write=False)

        object.__setattr__(self, "coords", coords)
        object.__setattr__(self, "offsets", offsets)

    def __len__(self) -> int:
        return int(self.offsets.size) - 1

    def __iter__(self) -> Iterator[np.ndarray]:
        for i in range(len(self)):
            yield self.segment(i)

    def segment(self, index: int) -> np.ndarray:
        """index 番目のセグメント頂点（shape (K,2) の view）を返す。"""
        n = len(self)
        i = int(index)
        if i < 0:
            i += n
        if i < 0 or i >= n:
            raise IndexError(f"segment index out of range: {index} (segments={n})")
        return self.coords[int(self.offsets[i]) : int(self.offsets[i + 1])]

    def segment_length(self, index: int) -> float:
        """index 番目のセグメントの折れ線長を返す。"""
        return polyline_length(self.segment(index))

    def total_length(self) -> float:
        """全セグメント長の合計を返す（継ぎ目の重なり分を含む）。"""
        return float(sum(self.segment_length(i) for i in range(len(self))))


def polyline_length(coords: np.ndarray) -> float:
    """折れ線 (N,2) の長さ（隣接頂点間ユークリッド距離の和）を返す。"""
    v = np.asarray(coords, dtype=np.float64)
    if v.shape[0] < 2:
        return 0.0
    d = np.diff(v[:, :2], axis=0)
    return float(np.sqrt((d * d).sum(axis=1)).sum())


def _as_xy(coords: object) -> np.ndarray:
    v = np.asarray(coords, dtype=np.float64)
    if v.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if v.ndim != 2 or v.shape[1] < 2:
        raise ValueError("coords は shape (N,2) 以上の 2 次元配列である必要がある")
    return np.ascontiguousarray(v[:, :2])


def split_into(
    coords: object,
    nb: int = DEFAULT_SEGMENT_COUNT,
    min_length: float = DEFAULT_MIN_LENGTH,
) -> SegmentedLine:
    """ポリラインをほぼ等長のセグメント列へ分割する。

    Parameters
    ----------
    coords : array-like
        shape (N,2)（3 列目以降は無視）のピクセル座標列。
    nb : int, default 255
        目標セグメント数。0 以下は既定値。
    min_length : float, default 2.0
        セグメント長の下限 [px]。0 以下は既定値。

    Returns
    -------
    SegmentedLine
        分割結果。セグメント長は `max(min_length, 全長 / nb)`。

    Notes
    -----
    - 累積長が目標長を超える位置で分割点を補間し、現セグメントをそこで閉じる。
    - 次セグメントは、直前の基点から分割点までの 0.9 の位置から開始する。
    - 最後の途中セグメントは目標長未満でも出力する。
    - 空入力は 0 セグメント、全長 0 の入力は全頂点を含む 1 セグメントになる。
    - NaN/inf を含む入力は分割せず、全頂点を含む 1 セグメントになる。
    - 座標の桁が大きく再開点が進まない場合は、次の頂点から次セグメントを始める。
    """
    v = _as_xy(coords)
    n = int(v.shape[0])
    if n == 0:
        return SegmentedLine(
            coords=np.zeros((0, 2), dtype=np.float64),
            offsets=np.zeros((1,), dtype=np.int32),
        )

    if not np.all(np.isfinite(v)):
        # 非有限座標は分割せず 1 セグメントとして返す（走査が停止しなくなるため）。
        return SegmentedLine(coords=v.copy(), offsets=np.array([0, n], dtype=np.int32))

    count = int(nb) if nb and int(nb) > 0 else DEFAULT_SEGMENT_COUNT
    minimum = float(min_length) if min_length and float(min_length) > 0 else DEFAULT_MIN_LENGTH
    total = polyline_length(v)
    seg_len = max(minimum, total / count)

    n_vertices, n_segments = _count_split(v, seg_len)
    out_coords = np.empty((n_vertices, 2), dtype=np.float64)
    out_offsets = np.empty((n_segments + 1,), dtype=np.int32)
    _fill_split(v, seg_len, out_coords, out_offsets)
    return SegmentedLine(coords=out_coords, offsets=out_offsets)


# ── Kernels ─────────────────────────────────────────────────────────────
@njit(cache=True)  # type: ignore[misc]
def _count_split(v: np.ndarray, seg_len: float) -> tuple[int, int]:
    """分割後の総頂点数とセグメント数を数える。"""
    n = v.shape[0]
    p0x = v[0, 0]
    p0y = v[0, 1]
    acc = 0.0
    nv = 1
    ns = 0
    i = 1
    while i < n:
        dx = v[i, 0] - p0x
        dy = v[i, 1] - p0y
        dl = np.sqrt(dx * dx + dy * dy)
        if acc + dl > seg_len:
            d = (seg_len - acc) / dl
            nv += 1
            ns += 1
            nx = p0x + dx * d * RESTART_FACTOR
            ny = p0y + dy * d * RESTART_FACTOR
            if nx == p0x and ny == p0y:
                nx = v[i, 0]
                ny = v[i, 1]
                i += 1
            p0x = nx
            p0y = ny
            nv += 1
            acc = 0.0
        else:
            acc += dl
            p0x = v[i, 0]
            p0y = v[i, 1]
            nv += 1
            i += 1
    ns += 1
    return nv, ns


@njit(cache=True)  # type: ignore[misc]
def _fill_split(
    v: np.ndarray,
    seg_len: float,
    out_coords: np.ndarray,
    out_offsets: np.ndarray,
) -> None:
    """_count_split と同じ走査で頂点と offsets を書き込む。"""
    n = v.shape[0]
    p0x = v[0, 0]
    p0y = v[0, 1]
    acc = 0.0
    vc = 0
    sc = 0
    out_offsets[0] = 0
    out_coords[vc, 0] = p0x
    out_coords[vc, 1] = p0y
    vc += 1
    i = 1
    while i < n:
        dx = v[i, 0] - p0x
        dy = v[i, 1] - p0y
        dl = np.sqrt(dx * dx + dy * dy)
        if acc + dl > seg_len:
            d = (seg_len - acc) / dl
            out_coords[vc, 0] = p0x + dx * d
            out_coords[vc, 1] = p0y + dy * d
            vc += 1
            sc += 1
            out_offsets[sc] = vc
            nx = p0x + dx * d * RESTART_FACTOR
            ny = p0y + dy * d * RESTART_FACTOR
            if nx == p0x and ny == p0y:
                # 桁落ちで再開点が進まない場合は次の頂点から再開する。
                nx = v[i, 0]
                ny = v[i, 1]
                i += 1
            p0x = nx
            p0y = ny
            out_coords[vc, 0] = p0x
            out_coords[vc, 1] = p0y
            vc += 1
            acc = 0.0
        else:
            acc += dl
            p0x = v[i, 0]
            p0y = v[i, 1]
            out_coords[vc, 0] = p0x
            out_coords[vc, 1] = p0y
            vc += 1
            i += 1
    sc += 1
    out_offsets[sc] = vc


__all__ = [
    "DEFAULT_MIN_LENGTH",
    "DEFAULT_SEGMENT_COUNT",
    "SegmentedLine",
    "polyline_length",
    "split_into",
]
