import logging
import time
from collections import deque
from typing import Callable, Deque, List

from avsim.domain.decisions import LogEvent
from avsim.domain.models import LogEntry, Position
from avsim.domain import config

logger = logging.getLogger(__name__)


class EventLog:
    """Append-only ring buffer of vehicle events, newest first on read."""

    def __init__(self, capacity: int = config.LOG_CAPACITY, clock: Callable[[], float] = time.time):
        self.entries: Deque[LogEntry] = deque(maxlen=capacity)
        self.clock = clock

    def add(self, vehicle_id: str, event: LogEvent, details: str, position: Position) -> LogEntry:
        entry = LogEntry(
            timestamp=self.clock() * 1000.0,
            vehicleId=vehicle_id,
            event=event,
            details=details,
            position=position
        )
        self.entries.append(entry)
        logger.debug("%s %s: %s", vehicle_id, event.value, details)
        return entry

    def get_logs(self) -> List[LogEntry]:
        return list(reversed(self.entries))

    def for_vehicle(self, vehicle_id: str) -> List[LogEntry]:
        return [e for e in self.get_logs() if e.vehicleId == vehicle_id]

    def clear(self):
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)
