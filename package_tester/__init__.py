"""Validate a collection of independently-versioned definitions packages.

Each package runs through a config, manifest, compile and lint pipeline on a
bounded pool of concurrent workers; failures are collected into one report.
"""

from .executor import BoundedExecutor, n_at_a_time
from .pipeline import CompilerFallbackResolver, ValidationOutcome, ValidationPipeline
from .report import ErrorAggregator

__all__ = [
    "BoundedExecutor",
    "CompilerFallbackResolver",
    "ErrorAggregator",
    "ValidationOutcome",
    "ValidationPipeline",
    "n_at_a_time",
]
