"""Service layer for business logic."""

from . import catalog, export, films, managers, ranking, telemetry

__all__ = [
    "catalog",
    "export",
    "films",
    "managers",
    "ranking",
    "telemetry",
]
