"""
Recorder interface for Redis call metrics.

Concrete recorders live in submodules:

- redis: Prometheus-backed recorder
- exposition: Rendering of a registry in the text exposition format
"""

import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterator, Union

STATUS_OK = "ok"
STATUS_ERR = "err"

Duration = Union[float, int, timedelta]


@dataclass(frozen=True)
class RedisReqProperties:
    """Dimensions of one Redis call."""
    keyspace: str
    command: str
    code: str


class RedisRecorderInterface(ABC):
    """Records the outcome and latency of Redis calls."""

    @abstractmethod
    def collect(self, properties: RedisReqProperties, duration: Duration) -> None:
        """Record one completed call."""

    @abstractmethod
    def unregister(self) -> None:
        """Release any registered metric families."""


class DummyRedisRecorder(RedisRecorderInterface):
    """Recorder that discards every observation."""

    def collect(self, properties: RedisReqProperties, duration: Duration) -> None:
        return None

    def unregister(self) -> None:
        return None


@contextmanager
def measure_redis_call(recorder: RedisRecorderInterface, keyspace: str, command: str) -> Iterator[None]:
    """Context manager to time a Redis call.

    The call is recorded with status ``ok``, or ``err`` if the block raises.
    Exceptions are re-raised after recording.
    """
    code = STATUS_OK
    start_time = time.perf_counter()
    try:
        yield
    except Exception:
        code = STATUS_ERR
        raise
    finally:
        duration = time.perf_counter() - start_time
        recorder.collect(
            RedisReqProperties(keyspace=keyspace, command=command, code=code),
            duration
        )
