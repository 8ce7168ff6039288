"""Timeline assembly for lot traceability.

Exposes pure functions over a LotRecord (or a raw stored mapping):
- is_stage_completed(record, stage) -> bool
- progress_percentage(record) -> float
- current_status(record) -> LotStatus
- assemble_timeline(record) -> LotTimeline

A stage is completed when its defining timestamp is present. Nothing here
validates stage order: a later stage may be completed while an earlier one
is not; assemble_timeline reports it in `out_of_order_stages`.
"""

from typing import Any, List, Mapping, Optional, Union

from core.models.lot import LotRecord
from lot_timeline.models import (
    LotStatus,
    LotTimeline,
    STATUS_LABELS,
    StageDefinition,
    TimelineStage,
)


# =============================================================================
# Stage Definitions
# =============================================================================

STAGES = (
    StageDefinition(name="harvest", title="Récolte", date_attr="harvest_date",
                    date_field="harvestDate", status=LotStatus.HARVESTED),
    StageDefinition(name="transport", title="Transport", date_attr="arrival_date_time",
                    date_field="arrivalDateTime", status=LotStatus.TRANSPORTED),
    StageDefinition(name="sorting", title="Tri", date_attr="sorting_date",
                    date_field="sortingDate", status=LotStatus.SORTED),
    StageDefinition(name="packaging", title="Emballage", date_attr="packaging_date",
                    date_field="packagingDate", status=LotStatus.PACKAGED),
    StageDefinition(name="storage", title="Stockage", date_attr="entry_date",
                    date_field="entryDate", status=LotStatus.IN_STORAGE),
    StageDefinition(name="export", title="Export", date_attr="loading_date",
                    date_field="loadingDate", status=LotStatus.IN_EXPORT),
    StageDefinition(name="delivery", title="Livraison", date_attr="actual_delivery_date",
                    date_field="actualDeliveryDate", status=LotStatus.DELIVERED),
)

STAGES_BY_NAME = {stage.name: stage for stage in STAGES}

NOT_AVAILABLE = "N/A"


# =============================================================================
# Utility Functions
# =============================================================================

RecordLike = Union[LotRecord, Mapping[str, Any]]


def _as_record(record: RecordLike) -> LotRecord:
    if isinstance(record, LotRecord):
        return record
    return LotRecord.model_validate(record or {})


def _stage_definition(stage: Union[StageDefinition, str]) -> StageDefinition:
    if isinstance(stage, StageDefinition):
        return stage
    try:
        return STAGES_BY_NAME[stage]
    except KeyError:
        raise ValueError(f"Unknown stage '{stage}' (expected one of {', '.join(STAGES_BY_NAME)})")


def _stage_date(record: LotRecord, stage: StageDefinition):
    return getattr(getattr(record, stage.name), stage.date_attr)


def _text(value: Optional[str]) -> str:
    return value if value else NOT_AVAILABLE


def _number(value: Optional[Union[float, str]], default: str = NOT_AVAILABLE) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        # Unparsed free text
        return NOT_AVAILABLE
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def stage_details(record: RecordLike, stage: Union[StageDefinition, str]) -> str:
    """Build the one-line detail text shown under a timeline stage."""
    record = _as_record(record)
    name = _stage_definition(stage).name

    if name == "harvest":
        h = record.harvest
        return f"Ferme: {_text(h.farm_location)} | Variété: {_text(h.variety)}"
    if name == "transport":
        t = record.transport
        return f"Véhicule: {_text(t.vehicle_id)} | Chauffeur: {_text(t.driver_name)}"
    if name == "sorting":
        s = record.sorting
        return f"Grade: {_text(s.quality_grade)} | Rejetés: {_number(s.rejected_quantity, '0')} kg"
    if name == "packaging":
        p = record.packaging
        return f"Poids net: {_number(p.net_weight, '0')} kg | Type: {_text(p.packaging_type)}"
    if name == "storage":
        s = record.storage
        return f"Zone: {_text(s.storage_zone)} | Temp: {_number(s.temperature)}°C"
    if name == "export":
        e = record.export
        return f"Destination: {_text(e.destination)} | Container: {_text(e.container_number)}"
    return f"Client: {_text(record.delivery.customer_name)}"


# =============================================================================
# Completion, Progress, Status
# =============================================================================

def is_stage_completed(record: RecordLike, stage: Union[StageDefinition, str]) -> bool:
    """True iff the stage's defining timestamp is present."""
    return _stage_date(_as_record(record), _stage_definition(stage)) is not None


def completed_stages(record: RecordLike) -> List[str]:
    """Names of completed stages, in pipeline order."""
    record = _as_record(record)
    return [stage.name for stage in STAGES if _stage_date(record, stage) is not None]


def progress_percentage(record: RecordLike) -> float:
    """Share of completed stages, 0 to 100 (exactly 100 * k / 7)."""
    return 100 * len(completed_stages(record)) / len(STAGES)


def current_status(record: RecordLike) -> LotStatus:
    """Status of the latest completed stage, checked from delivery backwards.

    Falls back to HARVESTED when no later stage is completed, including for
    a record whose harvest date is missing too.
    """
    record = _as_record(record)
    for stage in reversed(STAGES[1:]):
        if _stage_date(record, stage) is not None:
            return stage.status
    return LotStatus.HARVESTED


def out_of_order_stages(record: RecordLike) -> List[str]:
    """Completed stages that come after at least one incomplete stage."""
    record = _as_record(record)
    anomalies = []
    gap_seen = False
    for stage in STAGES:
        if _stage_date(record, stage) is None:
            gap_seen = True
        elif gap_seen:
            anomalies.append(stage.name)
    return anomalies


# =============================================================================
# Assembly
# =============================================================================

def assemble_timeline(record: RecordLike) -> LotTimeline:
    """Assemble the display-ready timeline of a lot.

    Args:
        record: Resolved LotRecord or the raw stored document

    Returns:
        LotTimeline with per-stage completion, progress and status
    """
    record = _as_record(record)

    stages = []
    for stage in STAGES:
        date = _stage_date(record, stage)
        stages.append(TimelineStage(
            name=stage.name,
            title=stage.title,
            completed=date is not None,
            date=date,
            details=stage_details(record, stage),
        ))

    completed_count = sum(1 for stage in stages if stage.completed)
    status = current_status(record)

    return LotTimeline(
        lot_number=record.display_lot_number,
        stages=stages,
        completed_count=completed_count,
        total_stages=len(STAGES),
        progress_percent=100 * completed_count / len(STAGES),
        status=status,
        status_label=STATUS_LABELS[status],
        out_of_order_stages=out_of_order_stages(record),
    )
