"""Tests for the folium route map."""

from __future__ import annotations

from pathlib import Path

import folium
import pytest

from fleet_routes.models import RunStatus
from fleet_routes.services import RouteService, RouteServiceConfig
from fleet_routes.visualization import create_route_map


@pytest.fixture
def live_view(make_run, make_stop, make_track, at):
    run = make_run(
        status=RunStatus.IN_PROGRESS,
        stops=[make_stop("Depot A", arrive=10, depart=15, mileage=110.0)],
        history=make_track(0, 30),
    )
    return RouteService(RouteServiceConfig(clock=lambda: at(40))).view_for_run(run)


def test_create_route_map_draws_segments(live_view, tmp_path: Path) -> None:
    output_path = tmp_path / "maps" / "route.html"
    map_object = create_route_map(live_view, output_html_path=output_path)

    assert isinstance(map_object, folium.Map)
    assert output_path.exists()
    html = map_object.get_root().render()
    assert "#3b82f6" in html
    assert "#71717a" in html
    assert "Route to Depot A" in html


def test_create_route_map_requires_location_data(make_run) -> None:
    view = RouteService().view_for_run(make_run(end=10))
    with pytest.raises(ValueError):
        create_route_map(view)
