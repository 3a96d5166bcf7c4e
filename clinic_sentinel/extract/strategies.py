"""Named extraction strategies for treatment log messages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ..const import (
    CREATE_TREATMENT_MARKER,
    MASK_CHAR,
    PERIAPICAL_KEYWORD,
    TREATMENT_CREATED_MARKER,
    TreatmentKind,
)

if TYPE_CHECKING:
    from ..logs.schema import LogEntry

# A masked name token: letters and digits around at least one mask character.
_MASKED_TOKEN = r"[^\W_]*\*(?:[^\W_]|\*)*"
_NAME_RUN = rf"(?P<name>{_MASKED_TOKEN}(?:[ \t]+{_MASKED_TOKEN})*)"

TREATMENT_CREATED_PATTERN = re.compile(
    rf"{re.escape(TREATMENT_CREATED_MARKER)}\s+for\s+{_NAME_RUN}"
)
CREATE_TREATMENT_PATTERN = re.compile(
    rf"{re.escape(CREATE_TREATMENT_MARKER)}\b.*?\bfor\s+{_NAME_RUN}",
    re.DOTALL,
)


@dataclass(frozen=True)
class TreatmentMatch:
    """Fields captured from one candidate message."""

    patient_display_name: str
    kind: TreatmentKind
    succeeded: bool


class ExtractionStrategy(Protocol):
    """Strategy interface: a marker test plus a guarded capture."""

    strategy_id: str

    def matches(self, entry: LogEntry) -> bool:
        """Return True if the entry carries this strategy's marker."""
        ...

    def extract(self, entry: LogEntry) -> TreatmentMatch | None:
        """Return the captured treatment, or None when the guard rejects it."""
        ...


def is_masked_name(name: str) -> bool:
    """Check the masked display-name shape, e.g. "He**** AR**"."""
    tokens = name.split()
    if not tokens:
        return False
    for token in tokens:
        if MASK_CHAR not in token:
            return False
        if not any(ch.isalpha() for ch in token):
            return False
        if not all(ch.isalnum() or ch == MASK_CHAR for ch in token):
            return False
    return True


def classify_kind(message: str) -> TreatmentKind:
    """Periapical when named in the message, panoramic otherwise."""
    if PERIAPICAL_KEYWORD in message.lower():
        return "periapical"
    return "panoramic"


def _capture(pattern: re.Pattern[str], message: str) -> str | None:
    match = pattern.search(message)
    if match is None:
        return None
    name = match.group("name").strip()
    if not is_masked_name(name):
        return None
    return name


class TreatmentCreatedStrategy:
    """Primary path: "Treatment created successfully for <masked name>"."""

    strategy_id = "treatment_created"

    def matches(self, entry: LogEntry) -> bool:
        """Return True if the success phrase appears verbatim."""
        return TREATMENT_CREATED_MARKER in entry.message

    def extract(self, entry: LogEntry) -> TreatmentMatch | None:
        """Capture the masked name following the success phrase."""
        name = _capture(TREATMENT_CREATED_PATTERN, entry.message)
        if name is None:
            return None
        return TreatmentMatch(
            patient_display_name=name,
            kind=classify_kind(entry.message),
            succeeded=True,
        )


class CreateTreatmentCallStrategy:
    """Fallback path: the creation function name without the exact phrase."""

    strategy_id = "create_treatment_call"

    def matches(self, entry: LogEntry) -> bool:
        """Return True for createTreatment lines lacking the success phrase."""
        return (
            CREATE_TREATMENT_MARKER in entry.message
            and TREATMENT_CREATED_MARKER not in entry.message
        )

    def extract(self, entry: LogEntry) -> TreatmentMatch | None:
        """Capture the masked name following "for" after the function name."""
        name = _capture(CREATE_TREATMENT_PATTERN, entry.message)
        if name is None:
            return None
        return TreatmentMatch(
            patient_display_name=name,
            kind=classify_kind(entry.message),
            succeeded=entry.severity != "error",
        )


PRIMARY_STRATEGIES: tuple[ExtractionStrategy, ...] = (TreatmentCreatedStrategy(),)
FALLBACK_STRATEGIES: tuple[ExtractionStrategy, ...] = (
    CreateTreatmentCallStrategy(),
)
