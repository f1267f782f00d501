"""State/store layer.

This package is the single source of truth for how normalized report
patches are merged into the canonical printer state, and for computing the
minimal change patch between two snapshots.
"""
