"""Deterministic state acceptance policy.

This module intentionally contains *no* payload parsing. The ingestion
boundary is responsible for extracting the report sequence id.
"""

from __future__ import annotations


def is_duplicate_sequence(last_sequence_id: str | None, incoming_sequence_id: str | None) -> bool:
    """A report repeating the last applied sequence id is a duplicate.

    Reports without a sequence id are never treated as duplicates.
    """
    if incoming_sequence_id is None or last_sequence_id is None:
        return False
    return incoming_sequence_id == last_sequence_id
