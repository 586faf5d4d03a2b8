"""
Prometheus recorder for Redis calls.

Every observation updates two metric families that share the label set
``application, command, keyspace, status``:

- ``app_redis_requests_total``: counter of completed calls
- ``app_redis_request_duration_seconds``: latency histogram

Registration and unregistration are configuration-time operations. They
should happen before concurrent traffic starts and after it stops.
"""

import math
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, Tuple
from weakref import WeakKeyDictionary

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from instrumenting.errors import AlreadyRegisteredError, InvalidConfigError, RecorderUnregisteredError
from instrumenting.logging import get_logger
from instrumenting.metrics import (
    Duration,
    DummyRedisRecorder,
    RedisRecorderInterface,
    RedisReqProperties,
)

REQUESTS_TOTAL_NAME = "app_redis_requests_total"
REQUEST_DURATION_NAME = "app_redis_request_duration_seconds"
LABEL_NAMES = ("application", "command", "keyspace", "status")

DEFAULT_DURATION_BUCKETS: Tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10
)


class MetricKey(NamedTuple):
    """Identifies one aggregation bucket."""
    application: str
    keyspace: str
    command: str
    status: str


@dataclass
class Config:
    """Recorder configuration.

    ``duration_buckets`` are histogram upper bounds in seconds. When empty,
    DEFAULT_DURATION_BUCKETS is used. The +Inf bucket is always implicit.
    """
    duration_buckets: Optional[Sequence[float]] = None


def validate_duration_buckets(buckets: Optional[Sequence[float]]) -> Tuple[float, ...]:
    """Return the bucket ladder to use, or raise InvalidConfigError."""
    if not buckets:
        return DEFAULT_DURATION_BUCKETS

    ladder: List[float] = []
    for bucket in buckets:
        try:
            value = float(bucket)
        except (TypeError, ValueError):
            raise InvalidConfigError(
                "Duration buckets must be numbers",
                {"bucket": repr(bucket)}
            )
        if math.isnan(value) or math.isinf(value) or value <= 0:
            raise InvalidConfigError(
                "Duration buckets must be finite and positive",
                {"bucket": value}
            )
        if ladder and value <= ladder[-1]:
            raise InvalidConfigError(
                "Duration buckets must be strictly ascending",
                {"bucket": value, "previous": ladder[-1]}
            )
        ladder.append(value)

    return tuple(ladder)


def duration_to_seconds(duration: Duration) -> float:
    """Normalize a duration to seconds."""
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


class RedisFamilies:
    """Counter and histogram families shared by the recorders of one registry.

    Each recorder attached to the families owns the series labelled with its
    application name.
    """

    def __init__(self, registry: CollectorRegistry, buckets: Tuple[float, ...]):
        self.registry = registry
        self.buckets = buckets
        self.applications: Set[str] = set()

        self.requests = Counter(
            REQUESTS_TOTAL_NAME,
            "Total Redis requests",
            LABEL_NAMES,
            registry=None
        )
        self.durations = Histogram(
            REQUEST_DURATION_NAME,
            "Redis request duration in seconds",
            LABEL_NAMES,
            registry=None,
            buckets=buckets
        )
        self._register()

    def _register(self):
        """Register both metric families, leaving nothing behind on failure."""
        registered = []
        for name, collector in ((REQUESTS_TOTAL_NAME, self.requests), (REQUEST_DURATION_NAME, self.durations)):
            try:
                self.registry.register(collector)
            except ValueError as e:
                for previous in registered:
                    self.registry.unregister(previous)
                raise AlreadyRegisteredError(name, {"error": str(e)})
            registered.append(collector)

    def unregister(self):
        self.registry.unregister(self.requests)
        self.registry.unregister(self.durations)


_families: "WeakKeyDictionary[CollectorRegistry, RedisFamilies]" = WeakKeyDictionary()
_families_lock = threading.Lock()


def _attach(registry: CollectorRegistry, application_name: str, buckets: Tuple[float, ...]) -> RedisFamilies:
    """Attach an application to the families of ``registry``, creating them if needed."""
    with _families_lock:
        families = _families.get(registry)
        if families is None:
            families = RedisFamilies(registry, buckets)
            _families[registry] = families
        elif application_name in families.applications:
            raise AlreadyRegisteredError(REQUESTS_TOTAL_NAME, {"application": application_name})
        elif families.buckets != buckets:
            raise AlreadyRegisteredError(
                REQUEST_DURATION_NAME,
                {"application": application_name, "registered_buckets": list(families.buckets)}
            )
        families.applications.add(application_name)
        return families


def _detach(families: RedisFamilies, application_name: str):
    """Detach an application, unregistering the families once none is left."""
    with _families_lock:
        families.applications.discard(application_name)
        if not families.applications:
            families.unregister()
            _families.pop(families.registry, None)


class RedisRecorder(RedisRecorderInterface):
    """Records Redis call counts and latencies in a Prometheus registry.

    Recorders with different application names may share a registry as long
    as they use the same bucket ladder.
    """

    def __init__(
        self,
        application_name: str,
        config: Optional[Config] = None,
        registry: Optional[CollectorRegistry] = None
    ):
        config = config or Config()
        self.application_name = application_name
        self.buckets = validate_duration_buckets(config.duration_buckets)
        self.registry = registry if registry is not None else REGISTRY
        self.logger = get_logger("instrumenting.metrics.redis")

        self._series: Dict[MetricKey, Tuple[Counter, Histogram]] = {}
        self._lock = threading.Lock()

        self._families = _attach(self.registry, application_name, self.buckets)
        self._requests = self._families.requests
        self._durations = self._families.durations
        self._registered = True

        self.logger.info(
            "Redis recorder registered",
            application=application_name,
            buckets=list(self.buckets)
        )

    @property
    def registered(self) -> bool:
        return self._registered

    def collect(self, properties: RedisReqProperties, duration: Duration) -> None:
        """Record one completed Redis call.

        Negative and non-finite durations are dropped with a warning. Calling
        this after unregister() raises RecorderUnregisteredError.
        """
        if not self._registered:
            raise RecorderUnregisteredError(
                details={"application": self.application_name}
            )

        seconds = duration_to_seconds(duration)
        if not math.isfinite(seconds) or seconds < 0:
            self.logger.warning(
                "Rejected Redis observation",
                application=self.application_name,
                keyspace=properties.keyspace,
                command=properties.command,
                status=properties.code,
                duration=seconds
            )
            return

        requests, durations = self._series_for(properties)
        requests.inc()
        durations.observe(seconds)

    def _series_for(self, properties: RedisReqProperties) -> Tuple[Counter, Histogram]:
        """Get or create the counter and histogram children for a key."""
        key = MetricKey(
            application=self.application_name,
            keyspace=properties.keyspace,
            command=properties.command,
            status=properties.code
        )
        series = self._series.get(key)
        if series is not None:
            return series

        with self._lock:
            series = self._series.get(key)
            if series is None:
                labels = {
                    "application": key.application,
                    "command": key.command,
                    "keyspace": key.keyspace,
                    "status": key.status,
                }
                series = (self._requests.labels(**labels), self._durations.labels(**labels))
                self._series[key] = series
        return series

    def series(self) -> List[MetricKey]:
        """Keys observed so far."""
        return list(self._series)

    def unregister(self) -> None:
        """Drop this recorder's series and release the metric families."""
        with self._lock:
            if not self._registered:
                return
            for key in self._series:
                self._requests.remove(key.application, key.command, key.keyspace, key.status)
                self._durations.remove(key.application, key.command, key.keyspace, key.status)
            self._series.clear()
            _detach(self._families, self.application_name)
            self._registered = False

        self.logger.info("Redis recorder unregistered", application=self.application_name)


def new_redis_recorder(
    application_name: str,
    config: Optional[Config] = None,
    registry: Optional[CollectorRegistry] = None
) -> RedisRecorder:
    """Create a Redis recorder registered in ``registry`` (default: the global one)."""
    return RedisRecorder(application_name, config, registry)


def get_redis_recorder(settings, registry: Optional[CollectorRegistry] = None) -> RedisRecorderInterface:
    """Get a recorder for the given settings, or a dummy one if metrics are disabled."""
    if not settings.metrics_enabled:
        return DummyRedisRecorder()
    return RedisRecorder(settings.application_name, settings.to_recorder_config(), registry)
