"""
asyncio Redis client that records every command it executes.
"""

import time
from typing import Any, Optional

import redis.asyncio as redis

from instrumenting.logging import get_logger
from instrumenting.metrics import STATUS_ERR, STATUS_OK, RedisRecorderInterface, RedisReqProperties


class InstrumentedRedis(redis.Redis):
    """Redis client that reports command latency and outcome to a recorder.

    Commands sent through pipelines are not recorded individually.
    """

    def __init__(self, recorder: RedisRecorderInterface, keyspace: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.recorder = recorder
        self.keyspace = keyspace or self._default_keyspace()
        self.logger = get_logger("instrumenting.redis.client")

    def _default_keyspace(self) -> str:
        """Keyspace label derived from the selected database, e.g. ``db0``."""
        db = self.connection_pool.connection_kwargs.get("db", 0)
        return f"db{db}"

    async def execute_command(self, *args, **options) -> Any:
        command = str(args[0]).upper() if args else "UNKNOWN"
        code = STATUS_OK
        start_time = time.perf_counter()
        try:
            return await super().execute_command(*args, **options)
        except Exception as e:
            code = STATUS_ERR
            self.logger.debug("Redis command failed", command=command, keyspace=self.keyspace, error=str(e))
            raise
        finally:
            self.recorder.collect(
                RedisReqProperties(keyspace=self.keyspace, command=command, code=code),
                time.perf_counter() - start_time
            )


def instrumented_from_url(
    url: str,
    recorder: RedisRecorderInterface,
    keyspace: Optional[str] = None,
    **kwargs
) -> InstrumentedRedis:
    """Create an instrumented client from a ``redis://`` URL."""
    connection_pool = redis.ConnectionPool.from_url(url, **kwargs)
    client = InstrumentedRedis(recorder, keyspace=keyspace, connection_pool=connection_pool)
    client.auto_close_connection_pool = True
    return client
