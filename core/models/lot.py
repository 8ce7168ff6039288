"""Lot traceability record models.

A lot record is one unit of fruit moving through the export pipeline.
Stored documents use camelCase field names (``harvest.lotNumber``,
``transport.arrivalDateTime``...); these models expose snake_case
attributes with the stored names as aliases, and accept either on input.

Historical data is inconsistent, so every field is optional and a missing
stage sub-object is read as an empty stage. Timestamps may arrive as ISO-8601
strings, datetimes (Firestore returns ``DatetimeWithNanoseconds``), dates,
or serialized Firestore timestamp mappings.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


# =============================================================================
# Value Parsers
# =============================================================================

def _parse_timestamp(value):
    """Parse a stage timestamp from any stored representation.

    None and blank strings mean the stage has not happened. A non-empty
    string that is not ISO-8601 is kept verbatim: the stage happened even if
    the date cannot be read.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        try:
            return datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return s
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is not None:
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return datetime.fromtimestamp(int(seconds) + int(nanos) / 1e9, tz=timezone.utc)
        return None if not value else value
    if hasattr(value, "ToDatetime"):
        # protobuf Timestamp
        return value.ToDatetime()
    return value


def _parse_number(value):
    """Parse an optional measurement (weights, temperatures, quantities).

    Free text that is not a number ("4 kg", "froid") is kept verbatim.
    """
    if value is None:
        return None
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        try:
            return float(s.replace(",", "."))
        except ValueError:
            return s
    return value


def _parse_text(value):
    """Coerce identifiers stored as numbers back to text."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


TimestampValue = Annotated[Optional[Union[datetime, str]], BeforeValidator(_parse_timestamp)]
NumberValue = Annotated[Optional[Union[float, str]], BeforeValidator(_parse_number)]
TextValue = Annotated[Optional[str], BeforeValidator(_parse_text)]


def is_timestamp_present(value: Any) -> bool:
    """Whether a stage timestamp counts as present.

    Works on raw stored values as well as parsed ones.
    """
    return _parse_timestamp(value) is not None


# =============================================================================
# Base Model
# =============================================================================

class LotBase(BaseModel):
    """Base for lot models: alias-or-name input, unknown fields preserved."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# =============================================================================
# Pipeline Stages
# =============================================================================

class HarvestStage(LotBase):
    """Harvest registration at the farm."""
    lot_number: TextValue = Field(default=None, alias="lotNumber")
    harvest_date: TimestampValue = Field(default=None, alias="harvestDate")
    farm_location: TextValue = Field(default=None, alias="farmLocation")
    variety: TextValue = None


class TransportStage(LotBase):
    """Transport from farm to the packing station."""
    arrival_date_time: TimestampValue = Field(default=None, alias="arrivalDateTime")
    vehicle_id: TextValue = Field(default=None, alias="vehicleId")
    driver_name: TextValue = Field(default=None, alias="driverName")


class SortingStage(LotBase):
    """Sorting and grading."""
    sorting_date: TimestampValue = Field(default=None, alias="sortingDate")
    quality_grade: TextValue = Field(default=None, alias="qualityGrade")
    rejected_quantity: NumberValue = Field(default=None, alias="rejectedQuantity")


class PackagingStage(LotBase):
    """Packing into export units."""
    packaging_date: TimestampValue = Field(default=None, alias="packagingDate")
    net_weight: NumberValue = Field(default=None, alias="netWeight")
    packaging_type: TextValue = Field(default=None, alias="packagingType")


class StorageStage(LotBase):
    """Cold storage entry."""
    entry_date: TimestampValue = Field(default=None, alias="entryDate")
    storage_zone: TextValue = Field(default=None, alias="storageZone")
    temperature: NumberValue = None


class ExportStage(LotBase):
    """Container loading for export."""
    loading_date: TimestampValue = Field(default=None, alias="loadingDate")
    destination: TextValue = None
    container_number: TextValue = Field(default=None, alias="containerNumber")


class DeliveryStage(LotBase):
    """Delivery to the customer."""
    actual_delivery_date: TimestampValue = Field(default=None, alias="actualDeliveryDate")
    customer_name: TextValue = Field(default=None, alias="customerName")


STAGE_SECTIONS = ("harvest", "transport", "sorting", "packaging", "storage", "export", "delivery")


# =============================================================================
# Lot Record
# =============================================================================

class LotRecord(LotBase):
    """A lot and its seven pipeline stages.

    The lot number may live at the top level (``lotNumber``), inside the
    harvest stage, or only as the document ``id``; ``display_lot_number``
    picks whichever is set.
    """
    id: TextValue = None
    lot_number: TextValue = Field(default=None, alias="lotNumber")

    harvest: HarvestStage = Field(default_factory=HarvestStage)
    transport: TransportStage = Field(default_factory=TransportStage)
    sorting: SortingStage = Field(default_factory=SortingStage)
    packaging: PackagingStage = Field(default_factory=PackagingStage)
    storage: StorageStage = Field(default_factory=StorageStage)
    export: ExportStage = Field(default_factory=ExportStage)
    delivery: DeliveryStage = Field(default_factory=DeliveryStage)

    @field_validator(*STAGE_SECTIONS, mode="before")
    @classmethod
    def _empty_stage(cls, value):
        return {} if value is None else value

    @property
    def display_lot_number(self) -> Optional[str]:
        return self.harvest.lot_number or self.lot_number or self.id

    def to_document(self) -> dict:
        """Serialize back to the stored (camelCase, JSON-safe) shape."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
