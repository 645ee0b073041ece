"""Display attributes derived from segment identity (color, opacity, payload)."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from polyline import encode as polyline_encode

from .config import (
    DEFAULT_SEGMENT_OPACITY,
    DIMMED_SEGMENT_OPACITY,
    HIGHLIGHTED_SEGMENT_OPACITY,
    SEGMENT_PALETTE,
)
from .models import LonLat, Segment


def segment_color(index: int) -> str:
    return SEGMENT_PALETTE[index % len(SEGMENT_PALETTE)]


def segment_opacity(segment_id: str, highlighted_id: Optional[str]) -> float:
    if highlighted_id is None:
        return DEFAULT_SEGMENT_OPACITY
    if segment_id == highlighted_id:
        return HIGHLIGHTED_SEGMENT_OPACITY
    return DIMMED_SEGMENT_OPACITY


def apply_highlight(
    segments: Sequence[Segment], highlighted_id: Optional[str] = None
) -> List[Segment]:
    """Return copies of ``segments`` with opacity set for the highlight state.

    With no highlight every segment renders at the default opacity; otherwise
    the highlighted one is fully opaque and the rest are dimmed. An unknown id
    dims everything.
    """

    return [
        replace(segment, opacity=segment_opacity(segment.id, highlighted_id))
        for segment in segments
    ]


def encode_path(path: Sequence[LonLat]) -> str:
    """Encode a ``(lon, lat)`` path as a Google polyline string."""

    if not path:
        return ""
    return polyline_encode([(lat, lon) for lon, lat in path])


def segment_payload(segment: Segment) -> Dict[str, Any]:
    """Plain mapping consumed by map and legend clients."""

    return {
        "id": segment.id,
        "label": segment.label,
        "path": [list(coord) for coord in segment.path],
        "encodedPath": encode_path(segment.path),
        "color": segment.color,
        "opacity": (
            segment.opacity if segment.opacity is not None else DEFAULT_SEGMENT_OPACITY
        ),
        "travelTime": segment.travel_time_label,
        "stopTime": segment.stop_time_label,
        "distance": segment.distance_label,
    }


__all__ = [
    "apply_highlight",
    "encode_path",
    "segment_color",
    "segment_opacity",
    "segment_payload",
]
