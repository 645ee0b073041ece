"""Service layer orchestrating route reconstruction for consumers."""

from .route_service import RouteService, RouteServiceConfig, RouteView

__all__ = ["RouteService", "RouteServiceConfig", "RouteView"]
