"""render_flow_line と矢印・座標再構成ヘルパのテスト。"""

from __future__ import annotations

import numpy as np
import pytest

from flowline.core.arrow import ArrowMode
from flowline.core.render_state import LineString, RenderState
from flowline.core.renderer import (
    arrow_segment_counts,
    draw_arrow,
    full_pixel_coordinates,
    render_flow_line,
    saved_state,
)
from flowline.core.runtime_config import runtime_config, set_config_path
from flowline.core.segmented_line import split_into
from flowline.core.style import FlowLine

LINE_100 = [[0.0, 0.0], [100.0, 0.0]]


def _state(ctx, coords=LINE_100, **kwargs) -> RenderState:
    return RenderState(context=ctx, geometry=LineString(np.asarray(coords)), **kwargs)


class _PointGeometry:
    def get_type(self) -> str:
        return "Point"

    def get_coordinates(self):
        return [[0.0, 0.0]]


def test_non_line_string_geometry_draws_nothing(recording_context, render_config) -> None:
    state = RenderState(context=recording_context, geometry=_PointGeometry())
    render_flow_line(LINE_100, state, FlowLine(width=2), config=render_config)
    assert recording_context.calls == []


def test_single_point_draws_nothing(recording_context, render_config) -> None:
    render_flow_line([[1.0, 1.0]], _state(recording_context), FlowLine(width=2), config=render_config)
    assert recording_context.calls == []


def test_zero_length_line_only_saves_and_restores(recording_context, render_config) -> None:
    coords = [[5.0, 5.0], [5.0, 5.0]]
    render_flow_line(coords, _state(recording_context, coords), FlowLine(width=2, arrow=2), config=render_config)
    assert recording_context.names() == ["save", "restore"]


def test_body_strokes_interpolate_width_and_color(recording_context, render_config) -> None:
    style = FlowLine(width=2, width2=10, color="#f00", color2="#00f")
    render_flow_line(LINE_100, _state(recording_context), style, config=render_config)

    strokes = recording_context.strokes()
    # 56 セグメントのうち最後の 1 つは描かない。
    assert len(strokes) == 55
    assert recording_context.fills() == []
    for k, (_, width, color, cap, join, path) in enumerate(strokes):
        assert width == pytest.approx(2.0 + 8.0 * k / 56)
        assert color == style.get_color(None, k / 56)
        assert cap == "butt"
        assert join == "round"
        assert len(path) == 2
    assert strokes[0][2] == "rgba(255,0,0,1)"
    assert strokes[0][5][0] == pytest.approx((0.0, 0.0))


def test_each_segment_is_an_independent_path(recording_context, render_config) -> None:
    render_flow_line(LINE_100, _state(recording_context), FlowLine(width=1), config=render_config)

    names = recording_context.names()
    assert names[0] == "save"
    assert names[-1] == "restore"
    assert names[1:5] == ["begin_path", "move_to", "line_to", "stroke"]
    assert names.count("begin_path") == 55
    assert names.count("stroke") == names.count("line_to")


def test_segment_crossing_a_vertex_strokes_after_each_point(recording_context, render_config) -> None:
    coords = [[0.0, 0.0], [3.0, 0.0], [3.0, 3.0]]
    render_flow_line(coords, _state(recording_context, coords), FlowLine(width=1), config=render_config)

    strokes = recording_context.strokes()
    # seg1 は (1.8,0)-(3,0)-(3,0.8)。パスを保持したまま 2 回ストロークする。
    seg1 = [s for s in strokes if len(s[5]) == 3]
    assert len(seg1) == 1
    np.testing.assert_allclose(seg1[0][5], [[1.8, 0.0], [3.0, 0.0], [3.0, 0.8]], atol=1e-9)
    assert len(strokes) == 1 + 2 + 1


def test_both_arrows_consume_segments_and_fill_triangles(recording_context, render_config) -> None:
    style = FlowLine(width=4, color="#f00", color2="#00f", arrow=2, line_cap="round")
    render_flow_line(LINE_100, _state(recording_context), style, config=render_config)

    fills = recording_context.fills()
    assert len(fills) == 2

    start_style, start_cap, start_path = fills[0]
    assert start_style == "rgba(255,0,0,1)"
    assert start_cap == "butt"
    np.testing.assert_allclose(start_path, [[0, 0], [16, 8], [16, -8], [0, 0]], atol=1e-9)

    end_style, _, end_path = fills[1]
    assert end_style == "rgba(0,0,255,1)"
    np.testing.assert_allclose(end_path, [[100, 0], [84, -8], [84, 8], [100, 0]], atol=1e-9)

    strokes = recording_context.strokes()
    # 16 / 2 = 8 セグメントずつ矢印側に割り当てる。
    assert len(strokes) == 56 - 8 - 8 - 1
    assert all(s[3] == "butt" for s in strokes)
    assert strokes[0][5][0][0] == pytest.approx(1.8 * 8)


def test_start_arrow_only(recording_context, render_config) -> None:
    render_flow_line(LINE_100, _state(recording_context), FlowLine(width=4, arrow=-1), config=render_config)
    assert len(recording_context.fills()) == 1
    assert len(recording_context.strokes()) == 56 - 8 - 1


def test_arrow_longer_than_line_is_skipped(recording_context, render_config) -> None:
    coords = [[0.0, 0.0], [10.0, 0.0]]
    render_flow_line(coords, _state(recording_context, coords), FlowLine(width=4, arrow=1), config=render_config)
    assert recording_context.fills() == []
    assert recording_context.strokes() == []
    assert recording_context.names() == ["save", "restore"]


def test_line_cap_is_taken_from_style_without_arrows(recording_context, render_config) -> None:
    render_flow_line(LINE_100, _state(recording_context), FlowLine(width=1, line_cap="round"), config=render_config)
    assert {s[3] for s in recording_context.strokes()} == {"round"}


def test_pixel_ratio_scales_widths(recording_context, render_config) -> None:
    state = _state(recording_context, pixel_ratio=2.0)
    render_flow_line(LINE_100, state, FlowLine(width=3), config=render_config)
    assert {s[1] for s in recording_context.strokes()} == {6.0}


def test_context_attributes_are_restored(recording_context, render_config) -> None:
    recording_context.line_width = 7.0
    recording_context.line_cap = "square"
    render_flow_line(LINE_100, _state(recording_context), FlowLine(width=2, arrow=2), config=render_config)

    assert recording_context.line_width == 7.0
    assert recording_context.line_cap == "square"
    assert recording_context.line_join == "miter"
    assert recording_context.names().count("save") == recording_context.names().count("restore") == 1


def test_custom_functions_receive_feature_and_steps(recording_context, render_config) -> None:
    seen: list[tuple[object, float]] = []

    def width(feature, step):
        seen.append((feature, step))
        return 1.0

    feature = {"id": 7}
    state = _state(recording_context, feature=feature)
    render_flow_line(LINE_100, state, FlowLine(width=width, color=lambda f, s: [0, 0, 0]), config=render_config)

    assert [s for _, s in seen] == [k / 56 for k in range(55)]
    assert all(f is feature for f, _ in seen)
    assert {s[2] for s in recording_context.strokes()} == {"rgba(0,0,0,1)"}


def test_error_in_color_function_still_restores(recording_context, render_config) -> None:
    def broken(feature, step):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        render_flow_line(LINE_100, _state(recording_context), FlowLine(width=1, color=broken), config=render_config)
    assert recording_context.calls[-1] == ("restore",)


def test_color_function_returning_none_draws_black(recording_context, render_config) -> None:
    style = FlowLine(width=2, color=lambda f, s: None)
    render_flow_line(LINE_100, _state(recording_context), style, config=render_config)

    strokes = recording_context.strokes()
    assert len(strokes) == 55
    assert {s[2] for s in strokes} == {"rgba(0,0,0,1)"}
    assert recording_context.calls[-1] == ("restore",)


def test_width_function_returning_none_keeps_current_width(recording_context, render_config) -> None:
    render_flow_line(LINE_100, _state(recording_context), FlowLine(width=lambda f, s: None), config=render_config)

    strokes = recording_context.strokes()
    assert len(strokes) == 55
    assert {s[1] for s in strokes} == {1.0}


def test_arrow_with_unusable_width_uses_min_half_width(recording_context, render_config) -> None:
    style = FlowLine(width=lambda f, s: "wide", arrow=2)
    render_flow_line(LINE_100, _state(recording_context), style, config=render_config)

    fills = recording_context.fills()
    assert len(fills) == 2
    for _, _, path in fills:
        assert max(abs(y) for _, y in path) == pytest.approx(8.0)


def test_malformed_discovered_config_falls_back_to_packaged_defaults(
    recording_context, tmp_path, monkeypatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    config_dir = tmp_path / ".flowline"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text("render: [1, 2]\n", encoding="utf-8")
    set_config_path(None)
    try:
        with pytest.raises(RuntimeError):
            runtime_config()
        render_flow_line(LINE_100, _state(recording_context), FlowLine(width=2))
    finally:
        set_config_path(None)

    # 同梱既定値（255 分割・最小 2px）で描かれる。
    assert len(recording_context.strokes()) == 55


def test_invisible_style_renders_full_geometry(recording_context, render_config) -> None:
    model = [[0.0, 0.0], [10.0, 0.0], [20.0, 0.0]]
    visible_part = [[100.0, 50.0], [120.0, 50.0]]
    state = RenderState(context=recording_context, geometry=LineString(np.asarray(model)), resolution=0.5)

    render_flow_line(visible_part, state, FlowLine(width=1, visible=False), config=render_config)

    xs = [p[0] for s in recording_context.strokes() for p in s[5]]
    assert min(xs) == pytest.approx(100.0)
    assert max(xs) > 130.0


def test_visible_style_uses_given_pixels(recording_context, render_config) -> None:
    model = [[0.0, 0.0], [10.0, 0.0], [20.0, 0.0]]
    visible_part = [[100.0, 50.0], [120.0, 50.0]]
    state = RenderState(context=recording_context, geometry=LineString(np.asarray(model)), resolution=0.5)

    render_flow_line(visible_part, state, FlowLine(width=1), config=render_config)

    xs = [p[0] for s in recording_context.strokes() for p in s[5]]
    assert max(xs) <= 120.0 + 1e-9


def test_full_pixel_coordinates_flips_y_and_scales() -> None:
    geometry = LineString(np.asarray([[0.0, 0.0], [10.0, 0.0], [20.0, 5.0]]))
    pixels = np.asarray([[100.0, 50.0], [120.0, 50.0]])

    out = full_pixel_coordinates(pixels, geometry, 0.5, 1.0)
    np.testing.assert_allclose(out, [[100.0, 50.0], [120.0, 50.0], [140.0, 40.0]])

    hidpi = full_pixel_coordinates(pixels, geometry, 0.5, 2.0)
    np.testing.assert_allclose(hidpi[-1], [180.0, 30.0])


def test_full_pixel_coordinates_keeps_pixels_for_zero_resolution() -> None:
    geometry = LineString(np.asarray([[0.0, 0.0], [10.0, 0.0]]))
    pixels = np.asarray([[1.0, 2.0], [3.0, 4.0]])
    assert full_pixel_coordinates(pixels, geometry, 0.0, 1.0) is pixels


def test_arrow_segment_counts() -> None:
    segments = split_into(LINE_100, 255, 2.0)
    assert arrow_segment_counts(segments, ArrowMode.NONE) == (0, 0)
    assert arrow_segment_counts(segments, ArrowMode.START) == (8, 0)
    assert arrow_segment_counts(segments, ArrowMode.END) == (0, 8)
    assert arrow_segment_counts(segments, ArrowMode.BOTH) == (8, 8)
    assert arrow_segment_counts(segments, ArrowMode.BOTH, arrow_length=5.0) == (3, 3)

    degenerate = split_into([[1.0, 1.0], [1.0, 1.0]], 255, 2.0)
    assert arrow_segment_counts(degenerate, ArrowMode.BOTH) == (0, 0)


def test_draw_arrow_diagonal(recording_context) -> None:
    draw_arrow(recording_context, np.array([0.0, 0.0]), np.array([-3.0, -4.0]), 30.0)

    assert recording_context.names() == ["begin_path", "move_to", "line_to", "line_to", "line_to", "fill"]
    np.testing.assert_allclose(
        recording_context.fills()[0][2],
        [[0.0, 0.0], [2.4, -21.8], [-21.6, -3.8], [0.0, 0.0]],
        atol=1e-9,
    )


def test_draw_arrow_skips_zero_direction(recording_context) -> None:
    draw_arrow(recording_context, np.array([1.0, 1.0]), np.array([1.0, 1.0]), 4.0)
    assert recording_context.calls == []


def test_saved_state_restores_on_error(recording_context) -> None:
    with pytest.raises(KeyError):
        with saved_state(recording_context):
            recording_context.line_width = 9.0
            raise KeyError("x")
    assert recording_context.line_width == 1.0
    assert recording_context.names() == ["save", "restore"]
