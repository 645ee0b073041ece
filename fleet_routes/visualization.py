"""Render route views as interactive Leaflet maps."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from .models import LonLat
from .services.route_service import RouteView

LatLon = Tuple[float, float]
PathLike = Union[str, Path]

_OVERVIEW_COLOR = "#2563eb"


def _to_latlon(path: Sequence[LonLat]) -> List[LatLon]:
    return [(lat, lon) for lon, lat in path]


def _map_center(view: RouteView) -> Optional[LatLon]:
    if view.current_position is not None:
        return (view.current_position.latitude, view.current_position.longitude)
    for segment in view.segments:
        if segment.path:
            lon, lat = segment.path[0]
            return (lat, lon)
    return None


def create_route_map(
    view: RouteView,
    *,
    output_html_path: Optional[PathLike] = None,
    zoom_start: int = 15,
) -> folium.Map:
    """Create an interactive map with one colored polyline per segment.

    Args:
        view: Route view produced by :class:`RouteService`.
        output_html_path: Optional path to persist the map as an HTML file.
        zoom_start: Initial zoom level centred on the current position.

    Returns:
        A :class:`folium.Map` with the overview path, the segments (using
        their color and opacity) and a current-position marker.

    Raises:
        ValueError: If the view has no location data to draw.
    """

    center = _map_center(view)
    if center is None:
        raise ValueError("Route view has no location data to draw")

    folium_map = folium.Map(location=center, zoom_start=zoom_start, control_scale=True)
    if len(view.overview_path) >= 2:
        folium.PolyLine(
            _to_latlon(view.overview_path),
            color=_OVERVIEW_COLOR,
            weight=3,
            opacity=0.4,
            tooltip="Full route",
        ).add_to(folium_map)

    for segment in view.segments:
        if len(segment.path) < 2:
            continue
        tooltip = f"{segment.label} | travel {segment.travel_time_label}"
        if segment.stop_time_label:
            tooltip += f" | stop {segment.stop_time_label}"
        folium.PolyLine(
            _to_latlon(segment.path),
            color=segment.color,
            weight=5,
            opacity=segment.opacity if segment.opacity is not None else 0.9,
            tooltip=tooltip,
        ).add_to(folium_map)

    if view.current_position is not None:
        folium.Marker(
            location=center,
            tooltip=f"Current position ({view.journey.vehicle_id})",
            icon=folium.Icon(color="blue", icon="truck", prefix="fa"),
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_route_map"]
