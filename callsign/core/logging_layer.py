# callsign/core/logging_layer.py
# Recorder event journal.
#
# Each CallRecorder owns one EventLogger. The recorder clears it whenever a
# new every/verify attempt starts, so the journal always describes the most
# recent attempt: how it started, how many rounds and calls were captured,
# which matchers were compiled, and how it ended (answer attached, verdict,
# or reset). No file IO. Timestamps are supplied by the caller.
#
# Canonical import:
#   from callsign.core.logging_layer import EventLogger, Event, EventFilter

# ===========================================================================
# SECTION 1 -- STDLIB IMPORTS
# ===========================================================================

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

# ===========================================================================
# SECTION 2 -- EVENT TYPES
# ===========================================================================

STUBBING_STARTED:     str = "STUBBING_STARTED"
VERIFICATION_STARTED: str = "VERIFICATION_STARTED"
ROUNDS_CAPTURED:      str = "ROUNDS_CAPTURED"
MATCHER_COMPILED:     str = "MATCHER_COMPILED"
ANSWER_ATTACHED:      str = "ANSWER_ATTACHED"
VERIFICATION_DONE:    str = "VERIFICATION_DONE"
RECORDER_RESET:       str = "RECORDER_RESET"

_HASH_SEP: str = "|"

# ===========================================================================
# SECTION 3 -- DATACLASSES: Event, EventFilter
# ===========================================================================

@dataclass(frozen=True)
class Event:
    """
    One journal entry.

    Fields
    ------
    id        : "EVT-" plus the logger's running counter.
    type      : One of the event type constants above.
    timestamp : Caller-supplied datetime.
    data      : Payload; values are plain str / int / bool.
    hash      : SHA-256 hex digest of (id, type, timestamp, data).
    """
    id: str
    type: str
    timestamp: datetime
    data: Dict[str, Any]
    hash: str


@dataclass
class EventFilter:
    """Criteria for EventLogger.query_events(). None means unconstrained."""
    event_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    limit: Optional[int] = None


# ===========================================================================
# SECTION 4 -- INTERNAL HELPERS
# ===========================================================================

def _compute_hash(
    event_id: str,
    event_type: str,
    timestamp: datetime,
    data: Dict[str, Any],
) -> str:
    # Payload items are sorted so equal payloads hash equally.
    preimage = _HASH_SEP.join((
        event_id,
        event_type,
        timestamp.isoformat(),
        repr(sorted(data.items())),
    ))
    return hashlib.sha256(preimage.encode("ascii", errors="replace")).hexdigest()


def _make_event_id(counter: int) -> str:
    return "EVT-{:016d}".format(counter)


# ===========================================================================
# SECTION 5 -- EventLogger
# ===========================================================================

class EventLogger:
    """
    In-memory journal of recorder events.

    Invalid input raises LoggingError; an event is never dropped silently.
    clear() empties the journal but keeps the id counter running, so ids
    stay unique over the lifetime of the logger.
    """

    def __init__(self) -> None:
        self._store: List[Event] = []
        self._counter: int = 0

    def log_event(self, event_type: str, data: Dict[str, Any], timestamp: datetime) -> str:
        """Append one event and return its id."""
        if not event_type:
            raise LoggingError("event_type must be a non-empty string")
        if timestamp is None:
            raise LoggingError("timestamp must be caller-supplied; None is not permitted")
        if not isinstance(timestamp, datetime):
            raise LoggingError(
                "timestamp must be a datetime instance; got: {}".format(type(timestamp))
            )

        self._counter += 1
        event_id = _make_event_id(self._counter)
        payload = dict(data)
        self._store.append(Event(
            id=event_id,
            type=event_type,
            timestamp=timestamp,
            data=payload,
            hash=_compute_hash(event_id, event_type, timestamp, payload),
        ))
        return event_id

    def query_events(self, filter: EventFilter) -> List[Event]:
        """Events accepted by filter, oldest first, truncated to filter.limit."""
        if filter is None:
            raise LoggingError("filter must not be None")

        results = [
            event for event in self._store
            if (filter.event_type is None or event.type == filter.event_type)
            and (filter.start_time is None or event.timestamp >= filter.start_time)
            and (filter.end_time is None or event.timestamp <= filter.end_time)
        ]
        if filter.limit is not None:
            results = results[: filter.limit]
        return results

    def event_count(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()


# ===========================================================================
# SECTION 6 -- EXCEPTIONS
# ===========================================================================

class LoggingError(Exception):
    """Raised by EventLogger on invalid input."""
