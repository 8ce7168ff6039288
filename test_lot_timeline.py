"""
Timeline Assembly Tests

Covers completion, progress, status and display details for lot records,
including records with missing stages and out-of-order completion.
"""

import pytest

from core.models.lot import LotRecord
from lot_timeline import (
    STAGES,
    LotStatus,
    assemble_timeline,
    completed_stages,
    current_status,
    is_stage_completed,
    out_of_order_stages,
    progress_percentage,
    stage_details,
)


STAGE_DATE_FIELDS = [
    ("harvest", "harvestDate"),
    ("transport", "arrivalDateTime"),
    ("sorting", "sortingDate"),
    ("packaging", "packagingDate"),
    ("storage", "entryDate"),
    ("export", "loadingDate"),
    ("delivery", "actualDeliveryDate"),
]


def make_document(*completed):
    """Stored lot document with a date on each named stage."""
    doc = {section: {} for section, _ in STAGE_DATE_FIELDS}
    doc["harvest"]["lotNumber"] = "LOT-2024-001"
    for section, date_field in STAGE_DATE_FIELDS:
        if section in completed:
            doc[section][date_field] = "2024-03-04T08:00:00"
    return doc


class TestStageCompletion:
    """A stage is completed iff its defining timestamp is present."""

    def test_stage_order_is_fixed(self):
        assert [s.name for s in STAGES] == [section for section, _ in STAGE_DATE_FIELDS]
        assert [s.date_field for s in STAGES] == [field for _, field in STAGE_DATE_FIELDS]

    @pytest.mark.parametrize("section,date_field", STAGE_DATE_FIELDS)
    def test_each_stage_reads_its_own_timestamp(self, section, date_field):
        record = LotRecord.model_validate(make_document(section))
        for stage in STAGES:
            assert is_stage_completed(record, stage) == (stage.name == section)

    def test_absent_forms_are_not_completed(self):
        record = LotRecord.model_validate({
            "harvest": {"harvestDate": None},
            "transport": {"arrivalDateTime": ""},
            "sorting": {"sortingDate": "   "},
        })
        assert completed_stages(record) == []

    def test_firestore_timestamp_mapping_counts_as_present(self):
        record = LotRecord.model_validate({
            "harvest": {"harvestDate": {"seconds": 1709539200, "nanoseconds": 0}},
        })
        assert is_stage_completed(record, "harvest")

    def test_unreadable_date_string_still_counts(self):
        record = LotRecord.model_validate({"storage": {"entryDate": "début mars"}})
        assert is_stage_completed(record, "storage")

    def test_accepts_raw_mapping(self):
        assert is_stage_completed(make_document("export"), "export")

    def test_unknown_stage_name_raises(self):
        with pytest.raises(ValueError):
            is_stage_completed(make_document(), "shipping")


class TestProgress:
    """Progress is 100 * k / 7 and monotonic in completed stages."""

    def test_exact_fractions(self):
        names = [s.name for s in STAGES]
        for k in range(len(names) + 1):
            doc = make_document(*names[:k])
            assert progress_percentage(doc) == 100 * k / 7

    def test_monotonic_when_adding_stages_in_order(self):
        names = [s.name for s in STAGES]
        previous = -1.0
        for k in range(len(names) + 1):
            current = progress_percentage(make_document(*names[:k]))
            assert current >= previous
            previous = current

    def test_removing_a_stage_never_increases(self):
        full = progress_percentage(make_document(*[s.name for s in STAGES]))
        assert full == 100.0
        for stage in STAGES:
            remaining = [s.name for s in STAGES if s.name != stage.name]
            assert progress_percentage(make_document(*remaining)) <= full

    def test_harvest_only(self):
        doc = make_document("harvest")
        assert progress_percentage(doc) == pytest.approx(14.2857, abs=1e-3)
        assert current_status(doc) == LotStatus.HARVESTED


class TestStatus:
    """Status follows the latest completed stage from delivery backwards."""

    @pytest.mark.parametrize("completed,expected", [
        (("harvest", "transport"), LotStatus.TRANSPORTED),
        (("harvest", "transport", "sorting"), LotStatus.SORTED),
        (("harvest", "transport", "sorting", "packaging"), LotStatus.PACKAGED),
        (("harvest", "transport", "sorting", "packaging", "storage"), LotStatus.IN_STORAGE),
        (("harvest", "transport", "sorting", "packaging", "storage", "export"), LotStatus.IN_EXPORT),
        (tuple(s.name for s in STAGES), LotStatus.DELIVERED),
    ])
    def test_in_order_pipeline(self, completed, expected):
        assert current_status(make_document(*completed)) == expected

    def test_export_wins_over_missing_middle_stages(self):
        doc = make_document("harvest", "transport", "export")
        assert current_status(doc) == LotStatus.IN_EXPORT

    def test_delivery_alone_is_delivered(self):
        assert current_status(make_document("delivery")) == LotStatus.DELIVERED

    def test_no_stage_at_all_falls_back_to_harvested(self):
        assert current_status(make_document()) == LotStatus.HARVESTED
        assert current_status({}) == LotStatus.HARVESTED


class TestAssembleTimeline:
    """assemble_timeline combines completion, progress, status and details."""

    def test_full_record(self):
        doc = make_document(*[s.name for s in STAGES])
        doc["transport"].update({"vehicleId": "TR-4521", "driverName": "Youssef"})
        timeline = assemble_timeline(LotRecord.model_validate(doc))

        assert timeline.lot_number == "LOT-2024-001"
        assert timeline.total_stages == 7
        assert timeline.completed_count == 7
        assert timeline.progress_percent == 100.0
        assert timeline.status == LotStatus.DELIVERED
        assert timeline.status_label == "Livré"
        assert timeline.out_of_order_stages == []
        assert [s.title for s in timeline.stages] == [
            "Récolte", "Transport", "Tri", "Emballage", "Stockage", "Export", "Livraison",
        ]
        assert timeline.stages[1].details == "Véhicule: TR-4521 | Chauffeur: Youssef"
        assert timeline.stages[0].date.year == 2024

    def test_out_of_order_completion_is_reported_not_rejected(self):
        timeline = assemble_timeline(make_document("harvest", "transport", "export"))

        assert timeline.status == LotStatus.IN_EXPORT
        assert timeline.status_label == "En Export"
        assert timeline.out_of_order_stages == ["export"]
        assert timeline.has_anomalies
        assert out_of_order_stages(make_document("transport")) == ["transport"]

    def test_every_field_absent_never_raises(self):
        doc = {section: {} for section, _ in STAGE_DATE_FIELDS}
        timeline = assemble_timeline(doc)

        assert timeline.completed_count == 0
        assert timeline.progress_percent == 0.0
        assert timeline.status == LotStatus.HARVESTED
        assert timeline.lot_number is None
        assert all(stage.date is None and not stage.completed for stage in timeline.stages)

    def test_null_stage_objects_never_raise(self):
        doc = {section: None for section, _ in STAGE_DATE_FIELDS}
        assert assemble_timeline(doc).completed_count == 0

    def test_missing_optional_fields_render_na(self):
        doc = make_document()
        assert stage_details(doc, "harvest") == "Ferme: N/A | Variété: N/A"
        assert stage_details(doc, "sorting") == "Grade: N/A | Rejetés: 0 kg"
        assert stage_details(doc, "packaging") == "Poids net: 0 kg | Type: N/A"
        assert stage_details(doc, "storage") == "Zone: N/A | Temp: N/A°C"
        assert stage_details(doc, "export") == "Destination: N/A | Container: N/A"
        assert stage_details(doc, "delivery") == "Client: N/A"

    def test_measurements_are_formatted(self):
        doc = make_document()
        doc["storage"].update({"storageZone": "B", "temperature": 0})
        doc["packaging"].update({"netWeight": "4000", "packagingType": "Carton 4kg"})
        doc["sorting"].update({"rejectedQuantity": 12.5})

        assert stage_details(doc, "storage") == "Zone: B | Temp: 0°C"
        assert stage_details(doc, "packaging") == "Poids net: 4000 kg | Type: Carton 4kg"
        assert stage_details(doc, "sorting") == "Grade: N/A | Rejetés: 12.5 kg"

    def test_free_text_measurement_renders_na(self):
        doc = make_document("packaging")
        doc["packaging"].update({"netWeight": "4 kg", "packagingType": "Carton"})
        doc["storage"].update({"temperature": "froid"})

        timeline = assemble_timeline(doc)

        assert timeline.stages[3].completed
        assert timeline.stages[3].details == "Poids net: N/A kg | Type: Carton"
        assert timeline.stages[4].details == "Zone: N/A | Temp: N/A°C"

    def test_does_not_mutate_record(self):
        record = LotRecord.model_validate(make_document("harvest", "sorting"))
        before = record.model_dump()
        assemble_timeline(record)
        assemble_timeline(record)
        assert record.model_dump() == before
