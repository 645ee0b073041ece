from fleet_routes.config import SEGMENT_PALETTE
from fleet_routes.presentation import (
    apply_highlight,
    encode_path,
    segment_color,
    segment_opacity,
    segment_payload,
)
from fleet_routes.segment_builder import build_segments


def test_colors_cycle_through_palette():
    assert segment_color(0) == "#3b82f6"
    assert segment_color(1) == "#ef4444"
    assert segment_color(len(SEGMENT_PALETTE)) == segment_color(0)
    assert segment_color(13) == SEGMENT_PALETTE[3]


def test_opacity_rules():
    assert segment_opacity("segment-0", None) == 0.9
    assert segment_opacity("segment-0", "segment-0") == 1.0
    assert segment_opacity("segment-1", "segment-0") == 0.3


def test_apply_highlight_returns_restyled_copies(completed_run):
    segments = build_segments(completed_run)
    plain = apply_highlight(segments)
    assert [s.opacity for s in plain] == [0.9, 0.9]

    focused = apply_highlight(segments, "segment-1")
    assert [s.opacity for s in focused] == [0.3, 1.0]
    assert segments[0].opacity is None

    assert [s.opacity for s in apply_highlight(segments, "missing")] == [0.3, 0.3]


def test_encode_path_uses_lat_lon_order():
    path = [(-120.2, 38.5), (-120.95, 40.7), (-126.453, 43.252)]
    assert encode_path(path) == "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
    assert encode_path([]) == ""


def test_segment_payload(completed_run):
    [first, _] = apply_highlight(build_segments(completed_run), "segment-0")
    payload = segment_payload(first)
    assert payload["id"] == "segment-0"
    assert payload["label"] == "Route to Depot A"
    assert payload["color"] == "#3b82f6"
    assert payload["opacity"] == 1.0
    assert payload["travelTime"] == "10 min"
    assert payload["stopTime"] == "5 min"
    assert payload["distance"] == "10.0 km"
    assert payload["path"][0] == list(first.path[0])
    assert isinstance(payload["encodedPath"], str) and payload["encodedPath"]
