"""
Core domain models and pure functions for the geofence engine.

This package contains the structure and trigger models, trigger band
generation, hierarchy queries, trigger rules and payload conversion.
Only the models are re-exported here; import the other modules directly.
"""

from .models import (
    Point,
    TriggerBand,
    Structure,
    StructureType,
    Boundary,
    BoundaryType,
    NotificationConfig,
    MembershipTrigger,
    PermanenceTrigger,
    Trigger,
    TriggersExport,
    ValidationResult,
    MutationResult,
    HistoryEntry,
    TreeNode,
    StructureRelationship,
    normalize_code,
)

__all__ = [
    "Point",
    "TriggerBand",
    "Structure",
    "StructureType",
    "Boundary",
    "BoundaryType",
    "NotificationConfig",
    "MembershipTrigger",
    "PermanenceTrigger",
    "Trigger",
    "TriggersExport",
    "ValidationResult",
    "MutationResult",
    "HistoryEntry",
    "TreeNode",
    "StructureRelationship",
    "normalize_code",
]
