"""Treatment extraction from normalized log entries."""

from __future__ import annotations

import hashlib
import logging
import re
from typing import TYPE_CHECKING

from ..const import MASK_CHAR
from ..sentinel.models import TreatmentEvent, build_treatment_id
from .strategies import FALLBACK_STRATEGIES, PRIMARY_STRATEGIES

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ..logs.schema import LogEntry
    from .strategies import ExtractionStrategy

LOGGER = logging.getLogger(__name__)

_STREAM_SITE_ID = re.compile(r"\[(\d+)\]")


def build_patient_key(display_name: str) -> str:
    """
    Derive a grouping key from a masked display name.

    The key is the first two visible characters of each name fragment plus a
    short digest of the full masked name. It is for counting only and never
    identifies a patient outside this system.
    """
    fragments = display_name.split()
    initials = "".join(frag.replace(MASK_CHAR, "")[:2] for frag in fragments)
    digest = hashlib.sha256(display_name.encode("utf-8")).hexdigest()[:6]
    return f"{initials or 'anon'}-{digest}"


def site_id_from_stream(source_stream: str | None) -> str | None:
    """Return the numeric site id embedded as "[1234]" in a log stream name."""
    if not source_stream:
        return None
    match = _STREAM_SITE_ID.search(source_stream)
    return match.group(1) if match else None


class TreatmentExtractor:
    """Run extraction strategies in priority order over a batch of entries."""

    def __init__(
        self,
        primary: Sequence[ExtractionStrategy] = PRIMARY_STRATEGIES,
        fallback: Sequence[ExtractionStrategy] = FALLBACK_STRATEGIES,
    ) -> None:
        self._primary = tuple(primary)
        self._fallback = tuple(fallback)

    def extract(
        self, entries: Iterable[LogEntry], site_id: str | None = None
    ) -> list[TreatmentEvent]:
        """
        Return treatment events, newest first, deduplicated by source message.

        The fallback strategies only run when no entry carries a primary
        marker. Extraction never raises.
        """
        batch = list(entries)
        events = self._run_tier(self._primary, batch, site_id)
        if events is None:
            events = self._run_tier(self._fallback, batch, site_id) or []
            LOGGER.warning(
                "No primary treatment markers found; fallback extraction produced "
                "%s event(s) for site %s.",
                len(events),
                site_id or "unknown",
            )

        events.sort(key=lambda event: event.timestamp, reverse=True)
        LOGGER.info(
            "Extracted %s treatment(s) for site %s (%s panoramic, %s periapical).",
            len(events),
            site_id or "unknown",
            sum(1 for e in events if e.kind == "panoramic"),
            sum(1 for e in events if e.kind == "periapical"),
        )
        return events

    def _run_tier(
        self,
        strategies: Sequence[ExtractionStrategy],
        batch: list[LogEntry],
        site_id: str | None,
    ) -> list[TreatmentEvent] | None:
        """Return events for this tier, or None when no entry had a marker."""
        candidates = 0
        rejected = 0
        skipped_no_time = 0
        seen_messages: set[str] = set()
        events: list[TreatmentEvent] = []

        for entry in batch:
            strategy = next((s for s in strategies if s.matches(entry)), None)
            if strategy is None:
                continue
            candidates += 1
            if entry.message in seen_messages:
                continue
            try:
                match = strategy.extract(entry)
            except (ValueError, TypeError, IndexError):
                LOGGER.warning(
                    "Strategy %s failed on log %s.", strategy.strategy_id, entry.id
                )
                match = None
            if match is None:
                rejected += 1
                continue
            if entry.timestamp is None:
                skipped_no_time += 1
                continue

            seen_messages.add(entry.message)
            resolved_site = (
                site_id or site_id_from_stream(entry.source_stream) or "unknown"
            )
            events.append(
                TreatmentEvent(
                    id=build_treatment_id(resolved_site, entry.message),
                    patient_key=build_patient_key(match.patient_display_name),
                    patient_display_name=match.patient_display_name,
                    kind=match.kind,
                    succeeded=match.succeeded,
                    timestamp=entry.timestamp,
                    site_id=resolved_site,
                    source_message=entry.message,
                    strategy=strategy.strategy_id,
                )
            )

        if candidates == 0:
            return None
        if rejected or skipped_no_time:
            LOGGER.debug(
                "Extraction tier: %s candidate(s), %s rejected by name guard, %s "
                "without a valid timestamp.",
                candidates,
                rejected,
                skipped_no_time,
            )
        return events
