"""
Text exposition of recorded metrics.
"""

from typing import Optional

from prometheus_client import REGISTRY, CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

CONTENT_TYPE = CONTENT_TYPE_LATEST


def render(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render every metric family in ``registry`` (default: the global one)."""
    return generate_latest(registry if registry is not None else REGISTRY)
