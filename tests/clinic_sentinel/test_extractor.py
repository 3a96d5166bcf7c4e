# ruff: noqa: S101
"""Tests for treatment extraction."""

from __future__ import annotations

from datetime import UTC, datetime

from clinic_sentinel.extract.extractor import (
    TreatmentExtractor,
    build_patient_key,
    site_id_from_stream,
)
from clinic_sentinel.extract.strategies import is_masked_name
from clinic_sentinel.logs.normalizer import normalize_record, normalize_records
from clinic_sentinel.logs.schema import LogEntry


def _entries(*records: object) -> list[LogEntry]:
    return normalize_records(records).entries


def test_clean_extraction_scenario() -> None:
    events = TreatmentExtractor().extract(
        _entries(
            "2025-02-27T10:16:02Z createTreatment: Treatment created successfully "
            "for He**** AR**"
        ),
        site_id="1234",
    )

    assert len(events) == 1
    event = events[0]
    assert event.patient_display_name == "He**** AR**"
    assert event.kind == "panoramic"
    assert event.succeeded
    assert event.timestamp == datetime(2025, 2, 27, 10, 16, 2, tzinfo=UTC)
    assert event.site_id == "1234"
    assert event.id.startswith("treatment-1234-")
    assert event.strategy == "treatment_created"
    assert event.patient_key.startswith("HeAR-")


def test_periapical_kind() -> None:
    events = TreatmentExtractor().extract(
        _entries(
            "2025-02-27T10:16:02Z Treatment created successfully for Jo** Sm*** "
            "(periapical)"
        )
    )

    assert [e.kind for e in events] == ["periapical"]
    assert events[0].patient_display_name == "Jo** Sm***"


def test_unmasked_name_is_rejected() -> None:
    events = TreatmentExtractor().extract(
        _entries("2025-02-27T10:16:02Z Treatment created successfully for John Smith")
    )

    assert events == []


def test_duplicate_messages_yield_one_event() -> None:
    line = "Treatment created successfully for Ma** Lo**"
    events = TreatmentExtractor().extract(
        _entries(
            {"timestamp": "2025-02-27T10:00:00Z", "message": line, "id": "a"},
            {"timestamp": "2025-02-27T10:05:00Z", "message": line, "id": "b"},
        )
    )

    assert len(events) == 1
    assert len({e.source_message for e in events}) == len(events)


def test_entries_without_timestamp_are_skipped() -> None:
    events = TreatmentExtractor().extract(
        _entries("Treatment created successfully for Ma** Lo**")
    )

    assert events == []


def test_results_are_newest_first() -> None:
    events = TreatmentExtractor().extract(
        _entries(
            "2025-02-27T09:00:00Z Treatment created successfully for Aa** Bb**",
            "2025-02-27T11:00:00Z Treatment created successfully for Cc** Dd**",
            "2025-02-27T10:00:00Z Treatment created successfully for Ee** Ff**",
        )
    )

    assert [e.timestamp.hour for e in events] == [11, 10, 9]


def test_fallback_runs_only_without_primary_markers() -> None:
    entries = _entries(
        {
            "timestamp": "2025-02-27T10:00:00Z",
            "message": "createTreatment called for Ma** Lo**",
        },
        {
            "timestamp": "2025-02-27T10:01:00Z",
            "message": "createTreatment failed for Ze** Qu**",
            "level": "error",
        },
    )

    events = TreatmentExtractor().extract(entries)

    assert {e.strategy for e in events} == {"create_treatment_call"}
    by_name = {e.patient_display_name: e for e in events}
    assert by_name["Ma** Lo**"].succeeded
    assert not by_name["Ze** Qu**"].succeeded

    mixed = [
        *entries,
        normalize_record(
            "2025-02-27T10:02:00Z Treatment created successfully for He**** AR**"
        ),
    ]
    events = TreatmentExtractor().extract([e for e in mixed if e is not None])

    assert [e.strategy for e in events] == ["treatment_created"]


def test_site_id_falls_back_to_log_stream() -> None:
    events = TreatmentExtractor().extract(
        _entries(
            {
                "timestamp": "2025-02-27T10:00:00Z",
                "message": "Treatment created successfully for Ma** Lo**",
                "logStream": "clinic-[4321]-sensor",
            },
            "2025-02-27T10:01:00Z Treatment created successfully for Aa** Bb**",
        )
    )

    assert {e.site_id for e in events} == {"4321", "unknown"}


def test_helpers() -> None:
    assert site_id_from_stream("x-[77]") == "77"
    assert site_id_from_stream("no id") is None
    assert site_id_from_stream(None) is None

    assert is_masked_name("He**** AR**")
    assert not is_masked_name("He**** Smith")
    assert not is_masked_name("*** **")

    assert build_patient_key("*** **").startswith("anon-")
    assert build_patient_key("He**** AR**") == build_patient_key("He**** AR**")


def test_accented_masked_names_are_captured() -> None:
    events = TreatmentExtractor().extract(
        _entries(
            "2025-02-27T10:16:02Z Treatment created successfully for Jé**** Mü**"
        )
    )

    assert is_masked_name("Jé**** Mü**")
    assert [e.patient_display_name for e in events] == ["Jé**** Mü**"]
