"""
Elasticsearch desired-state pod specification generator.

Computes, from a declarative cluster spec, the pod specs a reconciliation loop
diffs against the live cluster.
"""

__version__ = "0.1.0"

from .logging_setup import configure_logging

__all__ = ["configure_logging", "__version__"]
