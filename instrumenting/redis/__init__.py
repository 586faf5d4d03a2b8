"""
Instrumented Redis clients.
"""

from .client import InstrumentedRedis, instrumented_from_url

__all__ = ["InstrumentedRedis", "instrumented_from_url"]
