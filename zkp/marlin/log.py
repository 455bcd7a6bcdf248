"""
Execution log
=============

Append-only, timestamped record of pipeline actions. Entries are immutable
once appended; the log only shrinks through an explicit reset().

Every appended message is also emitted to this module's logger at INFO.
"""

import logging
from collections import namedtuple
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


LogEntry = namedtuple("LogEntry", ["timestamp", "message"])


def utc_now():
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class ExecutionLog:
    """Ordered list of LogEntry.

    Args:
        clock: zero-argument callable returning a datetime (default: UTC now)
    """

    def __init__(self, clock=None):
        self._clock = clock or utc_now
        self._entries = []

    def append(self, message):
        """Record `message` with the current clock time and return the entry."""
        entry = LogEntry(self._clock().isoformat(), message)
        self._entries.append(entry)
        logger.info(message)
        return entry

    @property
    def entries(self):
        # tuple copy so callers cannot mutate history
        return tuple(self._entries)

    def messages(self):
        """Messages only, in append order."""
        return [e.message for e in self._entries]

    def reset(self):
        """Drop every entry. The only way the log shrinks."""
        self._entries = []

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(tuple(self._entries))

    def to_records(self):
        """[{"timestamp", "message"}, ...] in append order."""
        return [{"timestamp": e.timestamp, "message": e.message} for e in self._entries]

    @classmethod
    def from_records(cls, records, clock=None):
        """Rebuild a log from to_records() output."""
        log = cls(clock=clock)
        log._entries = [LogEntry(r["timestamp"], r["message"]) for r in records]
        return log
