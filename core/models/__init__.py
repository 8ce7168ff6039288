"""Core data models - lot traceability records.

Shared by the resolver, the timeline assembler and the API.
"""

from core.models.lot import (
    # Base
    LotBase,
    TimestampValue,
    NumberValue,
    TextValue,
    is_timestamp_present,

    # Stages
    HarvestStage,
    TransportStage,
    SortingStage,
    PackagingStage,
    StorageStage,
    ExportStage,
    DeliveryStage,
    STAGE_SECTIONS,

    # Record
    LotRecord,
)

__all__ = [
    # Base
    "LotBase",
    "TimestampValue",
    "NumberValue",
    "TextValue",
    "is_timestamp_present",

    # Stages
    "HarvestStage",
    "TransportStage",
    "SortingStage",
    "PackagingStage",
    "StorageStage",
    "ExportStage",
    "DeliveryStage",
    "STAGE_SECTIONS",

    # Record
    "LotRecord",
]
