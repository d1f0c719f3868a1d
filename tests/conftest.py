from typing import List, Optional, Tuple

import pytest

from control_client.core.clock import Clock
from control_client.exceptions import TransportError
from control_client.models import Connection, Event, EventType, ProcessType, Session

GUID = "4f1c7a62-9b1e-4d3a-8f0e-2a6b5c9d7e10"
START = 1_700_000_000.0


class FakeClock(Clock):
    """Clock whose sleep advances time instantly."""

    def __init__(self, start: float = START, offset: float = 0.0):
        self.current = start
        self.offset = offset
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds

    def epoch_offset(self) -> float:
        return self.offset


class FakeService:
    """
    In-memory stand-in for ``SessionLogClient``. Events become visible once the
    fake clock reaches their arrival time; submitting a command records a
    queued-command event and schedules any pending results relative to it.
    """

    def __init__(self, clock: FakeClock, guid: str = GUID, known: bool = True):
        self.clock = clock
        self.guid = guid
        self.known = known
        self.timeline: List[Tuple[float, Event]] = []
        self.submissions: List[Tuple[set, int, str]] = []
        self.fetch_count = 0
        self.failing_fetches: set = set()
        self._pending_results: List[Tuple[float, str]] = []

    def add_event(self, at: float, event_type: int, data: Optional[str] = None):
        """Adds an event stamped (and visible) at local epoch instant ``at``."""
        self.timeline.append((at, Event(event_type=event_type, time=int((at - self.clock.offset) * 1000), data=data)))

    def schedule_result(self, delay: float, data: str):
        self._pending_results.append((delay, data))

    def fetch_session(self, guid: str) -> Optional[Session]:
        self.fetch_count += 1
        if self.fetch_count in self.failing_fetches:
            raise TransportError("Request timed out after 15 seconds.")
        if not self.known or guid != self.guid:
            return None
        visible = [event for at, event in sorted(self.timeline, key=lambda item: item[0]) if at <= self.clock.now()]
        return Session(guid=guid, connections=[Connection(process_type=ProcessType.GUEST, events=visible)])

    def submit_event(self, guids, event_type: int, payload: str) -> None:
        self.submissions.append((set(guids), int(event_type), payload))
        submitted_at = self.clock.now()
        self.add_event(submitted_at, EventType.QUEUED_COMMAND, payload)
        for delay, data in self._pending_results:
            self.add_event(submitted_at + delay, EventType.RAN_COMMAND, data)
        self._pending_results = []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(clock) -> FakeService:
    return FakeService(clock)
