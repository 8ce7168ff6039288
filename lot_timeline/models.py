"""Timeline models: stage definitions, lot status, assembled timeline."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class LotStatus(str, Enum):
    """Current status of a lot, named after its latest completed stage."""
    DELIVERED = "Delivered"
    IN_EXPORT = "InExport"
    IN_STORAGE = "InStorage"
    PACKAGED = "Packaged"
    SORTED = "Sorted"
    TRANSPORTED = "Transported"
    HARVESTED = "Harvested"


# Badge labels shown by the lot detail page
STATUS_LABELS = {
    LotStatus.DELIVERED: "Livré",
    LotStatus.IN_EXPORT: "En Export",
    LotStatus.IN_STORAGE: "En Stockage",
    LotStatus.PACKAGED: "Emballé",
    LotStatus.SORTED: "Trié",
    LotStatus.TRANSPORTED: "Transporté",
    LotStatus.HARVESTED: "Récolté",
}


class StageDefinition(BaseModel):
    """One pipeline stage and where its defining timestamp lives.

    Attributes:
        name: Stage key (also the record section holding it)
        title: Display title
        date_attr: LotRecord stage attribute holding the timestamp
        date_field: Stored (camelCase) name of that timestamp
        status: Status reached once this stage is the latest completed one
    """
    name: str
    title: str
    date_attr: str
    date_field: str
    status: LotStatus


class TimelineStage(BaseModel):
    """One stage of an assembled timeline."""
    name: str
    title: str
    completed: bool = False
    date: Optional[Union[datetime, str]] = None
    details: str = ""


class LotTimeline(BaseModel):
    """Display-ready view of a lot's progress.

    Attributes:
        lot_number: Lot number as stored on the record (if any)
        stages: The seven stages in pipeline order
        completed_count: Stages with a timestamp
        total_stages: Always 7
        progress_percent: 100 * completed_count / total_stages
        status: Current status
        status_label: Display label for the status
        out_of_order_stages: Completed stages that follow an incomplete one
    """
    lot_number: Optional[str] = None
    stages: List[TimelineStage] = Field(default_factory=list)
    completed_count: int = 0
    total_stages: int = 0
    progress_percent: float = 0.0
    status: LotStatus = LotStatus.HARVESTED
    status_label: str = STATUS_LABELS[LotStatus.HARVESTED]
    out_of_order_stages: List[str] = Field(default_factory=list)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.out_of_order_stages)
