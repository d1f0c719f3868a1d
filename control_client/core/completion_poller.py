"""
Completion poller: waits for the result event of a queued command by
re-reading the session's event log.
"""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, TYPE_CHECKING

from control_client.core.clock import Clock, SystemClock
from control_client.core.command_encoder import decode_output
from control_client.exceptions import ProtocolError, TransportError
from control_client.models import Event, EventType, Session
from control_client.utils import get_logger

if TYPE_CHECKING:
    from control_client.communication import SessionLogClient

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 1.0


class PollState(Enum):
    """
    States of a single wait for a command result.

    States:
        SEARCHING: No qualifying result event seen yet, deadline not reached
        FOUND: A result event newer than the command was found
        TIMED_OUT: The deadline plus one poll interval passed without a result
    """
    SEARCHING = auto()
    FOUND = auto()
    TIMED_OUT = auto()


@dataclass
class PollResult:
    state: PollState
    output: List[str] = field(default_factory=list)
    event: Optional[Event] = None
    polls: int = 0


def _queued_per_log(session: Session) -> List[List[Event]]:
    """Queued-command events of the session-level log and of each connection, kept apart."""
    logs = [session.events] + [connection.events for connection in session.connections]
    return [[event for event in log if event.event_type == EventType.QUEUED_COMMAND] for log in logs]


def find_execute_time(session: Session, clock: Clock, submitted_at: Optional[float] = None) -> float:
    """
    Locates the instant the latest queued-command event was recorded.

    Ordering is only guaranteed within one log, so each connection (and the
    session-level log) is checked on its own; the latest event across all of
    them wins. With ``submitted_at`` given, events recorded before it belong
    to earlier commands and are ignored.

    :param session: Session detail fetched after the command was submitted.
    :type session: Session
    :param clock: Clock used to convert event timestamps.
    :type clock: Clock
    :param submitted_at: Local epoch instant the command was submitted.
    :type submitted_at: Optional[float]
    :return: Local epoch instant of the latest queued-command event.
    :rtype: float
    :raises ProtocolError: If no qualifying queued-command event exists, or a
        log's timestamps are not in submission order.
    """
    queued: List[Event] = []
    for log in _queued_per_log(session):
        for previous, current in zip(log, log[1:]):
            if current.time < previous.time:
                raise ProtocolError(
                    f"Queued-command events on session {session.guid} are out of order "
                    f"({previous.time} followed by {current.time}); cannot tell which one is ours."
                )
        queued.extend(log)

    if submitted_at is not None:
        queued = [event for event in queued if clock.to_local(event.time) >= submitted_at]
    if not queued:
        raise ProtocolError(f"No queued-command event recorded on session {session.guid} after submission.")

    return clock.to_local(max(queued, key=lambda event: event.time).time)


def find_result_event(session: Session, execute_time: float, clock: Clock) -> Optional[Event]:
    """
    Returns the earliest result event with data recorded strictly after
    ``execute_time``, or None. Older result events belong to earlier commands.
    """
    candidates = [
        event for event in session.events_of_type(EventType.RAN_COMMAND)
        if event.has_data and clock.to_local(event.time) > execute_time
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda event: event.time)


class CompletionPoller:
    """
    Re-fetches a session once per interval until a result event for the
    latest queued command appears or the deadline passes.

    Transport failures during a tick are logged and the tick is skipped; only
    a result or the deadline ends the wait.
    """

    def __init__(self, client: 'SessionLogClient', clock: Optional[Clock] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL_SEC):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval!r}")
        self.client = client
        self.clock = clock or SystemClock()
        self.poll_interval = poll_interval

    def wait_for_result(self, guid: str, execute_time: float, started_at: float, timeout_sec: float,
                        baseline_event_count: int = 0) -> PollResult:
        """
        Waits for the command's result.

        :param guid: Session GUID the command was sent to.
        :type guid: str
        :param execute_time: Local epoch instant of the command's queued event.
        :type execute_time: float
        :param started_at: Local epoch instant the command was submitted.
        :type started_at: float
        :param timeout_sec: Client-side timeout; one poll interval of grace is added.
        :type timeout_sec: float
        :param baseline_event_count: Events seen before polling started; the log may only grow.
        :type baseline_event_count: int
        :return: FOUND with the decoded output, or TIMED_OUT with none.
        :rtype: PollResult
        :raises ProtocolError: If the session's event log shrinks between polls.
        """
        deadline = started_at + timeout_sec + self.poll_interval
        seen_events = baseline_event_count
        result = PollResult(state=PollState.SEARCHING)

        while result.state is PollState.SEARCHING:
            result.polls += 1
            event = None
            try:
                session = self.client.fetch_session(guid)
            except TransportError as e:
                logger.warning(f"Poll {result.polls} for session {guid} failed, will retry: {e}")
                session = None
            else:
                if session is None:
                    logger.warning(f"Session {guid} missing on poll {result.polls}, will retry.")

            if session is not None:
                count = session.event_count
                if count < seen_events:
                    raise ProtocolError(
                        f"Event log of session {guid} shrank from {seen_events} to {count} events between polls."
                    )
                seen_events = count
                event = find_result_event(session, execute_time, self.clock)

            if event is not None:
                result.state = PollState.FOUND
                result.event = event
                result.output = decode_output(event.data)
                logger.info(f"Result for session {guid} found after {result.polls} poll(s): {len(result.output)} line(s).")
            elif self.clock.now() >= deadline:
                result.state = PollState.TIMED_OUT
                logger.warning(f"Timed out waiting for result on session {guid} after {result.polls} poll(s).")
            else:
                self.clock.sleep(min(self.poll_interval, max(0.0, deadline - self.clock.now())))

        return result
