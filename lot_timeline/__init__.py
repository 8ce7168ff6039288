"""Lot Timeline - completion, progress and status of a lot.

Pure functions, no I/O:

    from lot_timeline import assemble_timeline

    timeline = assemble_timeline(resolution.record)
    print(f"{timeline.progress_percent:.0f}% - {timeline.status_label}")
"""

from lot_timeline.models import (
    LotStatus,
    LotTimeline,
    STATUS_LABELS,
    StageDefinition,
    TimelineStage,
)
from lot_timeline.engine import (
    STAGES,
    assemble_timeline,
    completed_stages,
    current_status,
    is_stage_completed,
    out_of_order_stages,
    progress_percentage,
    stage_details,
)

__all__ = [
    "LotStatus",
    "LotTimeline",
    "STATUS_LABELS",
    "StageDefinition",
    "TimelineStage",
    "STAGES",
    "assemble_timeline",
    "completed_stages",
    "current_status",
    "is_stage_completed",
    "out_of_order_stages",
    "progress_percentage",
    "stage_details",
]
