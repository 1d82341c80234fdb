"""テスト共通の記録用 DrawContext と fixture。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from flowline.core.runtime_config import RuntimeConfig


@dataclass
class RecordingContext:
    """2D canvas 相当の呼び出しを記録する DrawContext。

    stroke/fill 時点の属性とパス頂点を `calls` に残す。
    """

    line_width: float = 1.0
    line_cap: str = "butt"
    line_join: str = "miter"
    stroke_style: str = "#000000"
    fill_style: str = "#000000"
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    path: list[tuple[float, float]] = field(default_factory=list)
    _stack: list[tuple[Any, ...]] = field(default_factory=list)

    def _attrs(self) -> tuple[Any, ...]:
        return (self.line_width, self.line_cap, self.line_join, self.stroke_style, self.fill_style)

    def save(self) -> None:
        self._stack.append(self._attrs())
        self.calls.append(("save",))

    def restore(self) -> None:
        (
            self.line_width,
            self.line_cap,
            self.line_join,
            self.stroke_style,
            self.fill_style,
        ) = self._stack.pop()
        self.calls.append(("restore",))

    def begin_path(self) -> None:
        self.path = []
        self.calls.append(("begin_path",))

    def move_to(self, x: float, y: float) -> None:
        self.path.append((float(x), float(y)))
        self.calls.append(("move_to", float(x), float(y)))

    def line_to(self, x: float, y: float) -> None:
        self.path.append((float(x), float(y)))
        self.calls.append(("line_to", float(x), float(y)))

    def stroke(self) -> None:
        self.calls.append(
            ("stroke", self.line_width, self.stroke_style, self.line_cap, self.line_join, list(self.path))
        )

    def fill(self) -> None:
        self.calls.append(("fill", self.fill_style, self.line_cap, list(self.path)))

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def strokes(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == "stroke"]

    def fills(self) -> list[tuple[Any, ...]]:
        return [c[1:] for c in self.calls if c[0] == "fill"]


@pytest.fixture
def recording_context() -> RecordingContext:
    return RecordingContext()


@pytest.fixture
def render_config() -> RuntimeConfig:
    """同梱既定値と同じ値を持つ、探索を伴わない RuntimeConfig。"""
    return RuntimeConfig(
        config_path=None,
        segment_count=255,
        min_segment_length=2.0,
        arrow_length=16.0,
        arrow_min_half_width=8.0,
        output_dir=Path("data") / "output",
        png_scale=1.0,
    )
