# どこで: `src/flowline/__init__.py`。
# 何を: ルート `flowline` パッケージを定義し、スタイルと描画状態の型を再エクスポートする。
# なぜ: ホスト側コードから `from flowline import FlowLine` だけで使えるようにするため。

from __future__ import annotations

from flowline.core.arrow import ArrowMode
from flowline.core.render_state import DrawContext, LineString, RenderState
from flowline.core.segmented_line import SegmentedLine, split_into
from flowline.core.style import FlowLine

__all__ = [
    "ArrowMode",
    "DrawContext",
    "FlowLine",
    "LineString",
    "RenderState",
    "SegmentedLine",
    "split_into",
]
