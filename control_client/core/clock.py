"""
Time source used by the poller and dispatcher.

The service stamps events in milliseconds since the Unix epoch, expressed in
the host's local time. Every comparison therefore happens on a "local epoch"
scale: seconds since 1970-01-01 00:00 local time. The local offset is looked up
on each call, so a DST change during a long poll is picked up.
"""
import datetime
import time

_EPOCH = datetime.datetime(1970, 1, 1)


class Clock:
    """
    Interface for time access. Tests substitute an instance whose ``sleep``
    advances ``now`` instantly.
    """

    def now(self) -> float:
        """Current wall-clock instant on the local epoch scale, in seconds."""
        raise NotImplementedError

    def sleep(self, seconds: float) -> None:
        raise NotImplementedError

    def epoch_offset(self) -> float:
        """Seconds to add to a UTC epoch instant to get the local epoch instant."""
        raise NotImplementedError

    def to_local(self, time_ms: int) -> float:
        """Converts an event ``Time`` into a local epoch instant in seconds."""
        return time_ms / 1000.0 + self.epoch_offset()

    def to_datetime(self, instant: float) -> datetime.datetime:
        """Naive local datetime for a local epoch instant."""
        return _EPOCH + datetime.timedelta(seconds=instant)


class SystemClock(Clock):

    def now(self) -> float:
        return time.time() + self.epoch_offset()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def epoch_offset(self) -> float:
        offset = datetime.datetime.now().astimezone().utcoffset()
        return offset.total_seconds() if offset is not None else 0.0
