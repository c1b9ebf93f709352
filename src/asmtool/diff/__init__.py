"""
Diff Engines
============

- **generic**: LCS diff over any sequence, with pluggable equality
- **compare**: semantic comparison of symbols between two AsmFiles

Only the generic engine is re-exported here; import the comparator from
`asmtool.diff.compare` (it depends on the assembly model, which itself
builds on the generic engine).
"""

from asmtool.diff.generic import (
    Diff,
    DiffElement,
    Diffable,
    DiffType,
    SequenceDiffable,
    apply_diff,
)

__all__ = [
    "Diff",
    "DiffElement",
    "Diffable",
    "DiffType",
    "SequenceDiffable",
    "apply_diff",
]
