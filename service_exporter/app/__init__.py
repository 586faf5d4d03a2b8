"""
Exporter service exposing Redis call metrics for Prometheus to scrape.
"""

__version__ = "1.0.0"
