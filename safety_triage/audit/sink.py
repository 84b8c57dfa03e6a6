"""
Append-only audit sink.

This module provides the AuditSink class that stores AuditEvent
records either in a bounded in-memory window or as daily JSONL files.
There is no update or delete path.
"""

import asyncio
import json
import os
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, List, Tuple, Any, Iterator

from safety_triage.audit.events import AuditEvent, EventType
from safety_triage.config import AuditConfig
from safety_triage.exceptions import AuditWriteError
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("audit_sink")


@dataclass
class AuditStats:
    """Aggregate counts over recorded events."""
    total: int = 0
    by_event_type: Dict[str, int] = field(default_factory=dict)
    by_risk_level: Dict[str, int] = field(default_factory=dict)
    by_region: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "by_event_type": self.by_event_type,
            "by_risk_level": self.by_risk_level,
            "by_region": self.by_region,
        }


class _Tally:
    """Running counters keyed by categorical event fields."""

    def __init__(self):
        self.total = 0
        self.by_type: Counter = Counter()
        self.by_risk: Counter = Counter()
        self.by_region: Counter = Counter()

    def add(self, event_type: str, risk_level: Optional[str], region_code: Optional[str]) -> None:
        self.total += 1
        self.by_type[event_type] += 1
        if risk_level:
            self.by_risk[risk_level] += 1
        if region_code:
            self.by_region[region_code] += 1

    def to_stats(self) -> AuditStats:
        return AuditStats(
            total=self.total,
            by_event_type=dict(self.by_type.most_common()),
            by_risk_level=dict(self.by_risk.most_common()),
            by_region=dict(self.by_region.most_common())
        )


class AuditSink:
    """
    Append-only store of minimized audit events.

    Two modes:
      - in-memory (``log_dir`` unset): the newest ``max_memory_events``
        events are kept, with running counters for ``stats``
      - persistent (``log_dir`` set): events go straight to daily JSONL
        files and nothing is buffered; queries read the files back

    Example:
        sink = AuditSink()
        event_id = await sink.record(AuditEvent(event_type=EventType.TRIAGE_COMPLETED))
        stats = await sink.stats()
    """

    def __init__(self, config: Optional[AuditConfig] = None):
        """
        Initialize audit sink.

        Args:
            config: Sink configuration
        """
        self.config = config or AuditConfig()
        self._file_lock = threading.Lock()
        self._recorded = 0

        self._events: Optional[deque] = None
        self._tally: Optional[_Tally] = None

        if self.persistent:
            Path(self.config.log_dir).mkdir(parents=True, exist_ok=True)
        else:
            self._events = deque(maxlen=self.config.max_memory_events)
            self._tally = _Tally()

        logger.info(f"AuditSink initialized (persistent={self.persistent})")

    @property
    def persistent(self) -> bool:
        return bool(self.config.log_dir)

    @property
    def buffered_count(self) -> int:
        """Number of events currently held in memory."""
        return len(self._events) if self._events is not None else 0

    def _get_log_file_path(self, created_at: datetime) -> str:
        """Get the daily log file for an event."""
        date_str = created_at.astimezone(timezone.utc).strftime("%Y-%m-%d")
        return os.path.join(self.config.log_dir, f"audit_{date_str}.jsonl")

    def _append_line(self, event: AuditEvent) -> None:
        """Write one event as a JSON line (runs in a worker thread)."""
        line = event.to_json() + "\n"
        with self._file_lock:
            with open(self._get_log_file_path(event.created_at), 'a', encoding='utf-8') as f:
                f.write(line)

    async def record(self, event: AuditEvent) -> str:
        """
        Record an audit event.

        Args:
            event: The event to record

        Returns:
            str: The event id

        Raises:
            TypeError: If ``event`` is not an AuditEvent
            AuditWriteError: If the persistent write fails
        """
        if not isinstance(event, AuditEvent):
            raise TypeError(f"AuditSink only accepts AuditEvent, got {type(event).__name__}")

        if self.persistent:
            try:
                await asyncio.to_thread(self._append_line, event)
            except OSError as e:
                raise AuditWriteError(f"Failed to write audit event {event.id}") from e
        else:
            self._events.append(event)
            self._tally.add(
                event.event_type.value,
                event.risk_level.value if event.risk_level else None,
                event.region_code
            )

        self._recorded += 1
        logger.debug(f"AUDIT: {event.event_type.value} {event.id}")
        return event.id

    def count(self) -> int:
        """Number of events recorded by this process."""
        return self._recorded

    async def snapshot(
        self,
        event_type: Optional[EventType] = None,
        limit: Optional[int] = None
    ) -> Tuple[AuditEvent, ...]:
        """
        Read-only view of recorded events, oldest first.

        In-memory mode covers the retained window only. Persistent mode
        reads every daily file.

        Args:
            event_type: Only return events of this type
            limit: Only return the newest ``limit`` matching events
        """
        if self.persistent:
            return await asyncio.to_thread(self._read_events, event_type, limit)

        events = [e for e in self._events if event_type is None or e.event_type == event_type]
        if limit:
            events = events[-limit:]
        return tuple(events)

    async def stats(self) -> AuditStats:
        """Aggregate counts by event type, risk level and region."""
        if self.persistent:
            return await asyncio.to_thread(self._scan_stats)
        return self._tally.to_stats()

    # ------------------------------------------------------------------
    # File reads (worker thread)
    # ------------------------------------------------------------------

    def _log_files(self) -> List[Path]:
        return sorted(Path(self.config.log_dir).glob("audit_*.jsonl"))

    def _iter_records(self) -> Iterator[Dict[str, Any]]:
        """Stream decoded lines from every daily file, oldest first."""
        with self._file_lock:
            for path in self._log_files():
                with open(path, 'r', encoding='utf-8') as f:
                    for line in f:
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            yield json.loads(line)
                        except json.JSONDecodeError:
                            logger.warning(f"Skipping malformed audit line in {path.name}")

    def _read_events(
        self,
        event_type: Optional[EventType],
        limit: Optional[int]
    ) -> Tuple[AuditEvent, ...]:
        events: deque = deque(maxlen=limit or None)
        for data in self._iter_records():
            if event_type is not None and data.get("event_type") != event_type.value:
                continue
            try:
                events.append(AuditEvent.from_dict(data))
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping unreadable audit record")
        return tuple(events)

    def _scan_stats(self) -> AuditStats:
        tally = _Tally()
        for data in self._iter_records():
            event_type = data.get("event_type")
            if not event_type:
                continue
            tally.add(event_type, data.get("risk_level"), data.get("region_code"))
        return tally.to_stats()
