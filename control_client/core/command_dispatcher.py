"""
Command Dispatcher: runs one command on a remote machine and returns its output.
"""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, TYPE_CHECKING

from control_client.core.clock import Clock, SystemClock
from control_client.core.command_encoder import encode
from control_client.core.completion_poller import (
    DEFAULT_POLL_INTERVAL_SEC,
    CompletionPoller,
    PollState,
    find_execute_time,
)
from control_client.exceptions import ProtocolError
from control_client.models import EventType
from control_client.utils import get_logger

if TYPE_CHECKING:
    from control_client.communication import SessionLogClient
    from control_client.config import ConfigManager

logger = get_logger(__name__)

DEFAULT_COMMAND_TIMEOUT_MS = 10000


class CommandOutcome(Enum):
    """
    How a command run ended. Transport and protocol failures are raised instead.

    States:
        COMPLETED: The result event arrived; ``output`` holds its lines
        NOT_FOUND: The target GUID has no session; nothing was submitted
        TIMED_OUT: No result before the deadline; the command may still be running remotely
    """
    COMPLETED = auto()
    NOT_FOUND = auto()
    TIMED_OUT = auto()


@dataclass
class CommandResult:
    outcome: CommandOutcome
    guid: str
    output: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is CommandOutcome.COMPLETED


class CommandDispatcher:
    """
    Submits a command as a queued-command event and waits for its result.

    Commands against the same GUID must not overlap: results are matched to
    the latest queued-command event, so two concurrent submissions could be
    credited with each other's output.
    """

    def __init__(self, client: 'SessionLogClient', clock: Optional[Clock] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL_SEC):
        self.client = client
        self.clock = clock or SystemClock()
        self.poller = CompletionPoller(client, clock=self.clock, poll_interval=poll_interval)

    @classmethod
    def from_config(cls, config: 'ConfigManager', client: 'SessionLogClient') -> 'CommandDispatcher':
        return cls(client, poll_interval=config.get('command.poll_interval_sec', DEFAULT_POLL_INTERVAL_SEC))

    def run(self, guid: str, command: str, timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS,
            use_powershell: bool = False) -> CommandResult:
        """
        Runs a command on the machine behind ``guid``.

        :param guid: Target session GUID.
        :type guid: str
        :param command: Command text.
        :type command: str
        :param timeout_ms: Execution window for the remote agent; also the client-side wait.
        :type timeout_ms: int
        :param use_powershell: Run under PowerShell instead of the default interpreter.
        :type use_powershell: bool
        :return: The outcome and, when completed, the output lines.
        :rtype: CommandResult
        :raises ValueError: If ``timeout_ms`` is not a positive integer.
        :raises TransportError: If the lookup, the submission or the post-submission fetch fails.
        :raises ProtocolError: If the service did not record the submitted command.
        """
        payload = encode(command, timeout_ms, use_powershell)

        session = self.client.fetch_session(guid)
        if session is None:
            logger.warning(f"Not running command: session {guid} not found.")
            return CommandResult(outcome=CommandOutcome.NOT_FOUND, guid=guid)

        started_at = self.clock.now()
        logger.info(f"Running command on session {guid} (timeout {timeout_ms}ms, powershell={use_powershell}).")
        self.client.submit_event({guid}, EventType.QUEUED_COMMAND, payload)

        session = self.client.fetch_session(guid)
        if session is None:
            raise ProtocolError(f"Session {guid} disappeared right after a command was submitted to it.")
        execute_time = find_execute_time(session, self.clock, submitted_at=started_at)
        logger.debug(f"Command on session {guid} queued at local instant {execute_time:.3f}")

        poll = self.poller.wait_for_result(
            guid,
            execute_time=execute_time,
            started_at=started_at,
            timeout_sec=timeout_ms / 1000.0,
            baseline_event_count=session.event_count,
        )

        if poll.state is PollState.FOUND:
            return CommandResult(outcome=CommandOutcome.COMPLETED, guid=guid, output=poll.output)
        return CommandResult(outcome=CommandOutcome.TIMED_OUT, guid=guid)
