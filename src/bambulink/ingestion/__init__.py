"""Ingestion layer.

Turns decoded report messages into pruned partial canonical state.
"""

__all__: list[str] = []
