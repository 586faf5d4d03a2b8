"""
Test helpers for reading the text exposition.
"""

from typing import Dict, FrozenSet, Tuple

from prometheus_client.parser import text_string_to_metric_families

from instrumenting.metrics import RedisReqProperties

SampleKey = Tuple[str, FrozenSet[Tuple[str, str]]]


def parse_samples(text: str) -> Dict[SampleKey, float]:
    """Map (sample name, label items) to value for every sample in ``text``."""
    samples = {}
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            samples[(sample.name, frozenset(sample.labels.items()))] = sample.value
    return samples


def label_items(properties: RedisReqProperties, application: str = "test-app", **extra) -> FrozenSet[Tuple[str, str]]:
    """Label items of a Redis series, as found in parse_samples keys."""
    labels = {
        "application": application,
        "command": properties.command,
        "keyspace": properties.keyspace,
        "status": properties.code,
    }
    labels.update(extra)
    return frozenset(labels.items())
