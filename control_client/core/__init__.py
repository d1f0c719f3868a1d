"""
Remote command protocol: encoding, polling and dispatch.
"""
from control_client.core.clock import Clock, SystemClock
from control_client.core.completion_poller import CompletionPoller, PollResult, PollState
from control_client.core.command_dispatcher import CommandDispatcher, CommandOutcome, CommandResult
from control_client.core.presence import get_last_contact

__all__ = [
    'Clock',
    'SystemClock',
    'CompletionPoller',
    'PollResult',
    'PollState',
    'CommandDispatcher',
    'CommandOutcome',
    'CommandResult',
    'get_last_contact'
]
