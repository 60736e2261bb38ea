"""
Orchestrators for the geofence engine.

This module contains the engine facade that owns the structure set,
the trigger set and the undo log for one editing session.
"""
from .engine import GeofenceEngine

__all__ = ["GeofenceEngine"]
