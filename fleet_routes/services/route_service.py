"""Route view service.

Bundles everything the map and legend consumers need for one journey:
styled segments, the simplified overview path, the current-position marker,
idle gaps between runs and the stop list. Uses the pure builders in
``segment_builder`` and ``run_aggregation`` so the service itself holds no
route state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from ..geometry import simplify_route
from ..models import (
    AggregatedRun,
    IdleGap,
    Journey,
    LocationPoint,
    LonLat,
    Run,
    Segment,
    Stop,
    StopStatus,
)
from ..presentation import apply_highlight
from ..run_aggregation import DriverLookup, aggregate_runs
from ..segment_builder import build_segments
from ..utils import utc_now


@dataclass(frozen=True, slots=True)
class RouteView:
    journey: Journey
    segments: Tuple[Segment, ...]
    overview_path: Tuple[LonLat, ...]
    current_position: Optional[LocationPoint]
    stops: Tuple[Stop, ...] = ()
    idle_gaps: Tuple[IdleGap, ...] = ()
    highlighted_id: Optional[str] = None

    @property
    def title(self) -> str:
        return _journey_id(self.journey)

    def highlight(self, segment_id: Optional[str]) -> "RouteView":
        """Return a copy with segment opacity recomputed for ``segment_id``."""

        return RouteView(
            journey=self.journey,
            segments=tuple(apply_highlight(self.segments, segment_id)),
            overview_path=self.overview_path,
            current_position=self.current_position,
            stops=self.stops,
            idle_gaps=self.idle_gaps,
            highlighted_id=segment_id,
        )


@dataclass(slots=True)
class RouteServiceConfig:
    clock: Callable[[], datetime] = utc_now
    logger: logging.Logger | None = None


class RouteService:
    def __init__(self, config: RouteServiceConfig | None = None):
        self.config = config or RouteServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    def view_for_run(self, run: Run) -> RouteView:
        return self._build_view(run, idle_gaps=())

    def view_for_aggregate(self, aggregate: AggregatedRun) -> RouteView:
        return self._build_view(aggregate, idle_gaps=aggregate.idle_gaps)

    def views_for_runs(
        self, runs: Sequence[Run], drivers: DriverLookup
    ) -> List[RouteView]:
        if not runs:
            return []
        views = [self.view_for_aggregate(a) for a in aggregate_runs(runs, drivers)]
        self._log.info("Built %d route views from %d runs", len(views), len(runs))
        return views

    def _build_view(
        self, journey: Journey, idle_gaps: Tuple[IdleGap, ...]
    ) -> RouteView:
        segments = build_segments(journey, now=self.config.clock())
        history = sorted(journey.location_history, key=lambda p: p.timestamp)
        if not history:
            self._log.warning("Journey %s has no location history", _journey_id(journey))
        return RouteView(
            journey=journey,
            segments=tuple(apply_highlight(segments)),
            overview_path=tuple(simplify_route(history)),
            current_position=history[-1] if history else None,
            stops=tuple(s for s in journey.stops if s.status is not StopStatus.CANCELED),
            idle_gaps=tuple(g for g in idle_gaps if g.duration.total_seconds() > 0),
        )


def _journey_id(journey: Journey) -> str:
    if isinstance(journey, AggregatedRun):
        return journey.key.slug
    return journey.id


__all__ = ["RouteService", "RouteServiceConfig", "RouteView"]
