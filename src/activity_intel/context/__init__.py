"""Context layer - Compact AI-ready projections of activity analytics."""

from activity_intel.context.projector import (
    CONTEXT_MODES,
    ActivityAIContextMode,
    ActivityContextProjector,
    build_activity_ai_context,
    compact_number,
)

__all__ = [
    "CONTEXT_MODES",
    "ActivityAIContextMode",
    "ActivityContextProjector",
    "build_activity_ai_context",
    "compact_number",
]
