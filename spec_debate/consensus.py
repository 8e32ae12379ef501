"""Consensus check over one round of critiques."""

from collections.abc import Sequence

from spec_debate.models import Critique, Verdict

# Thresholds are configured at percentage-point precision, so 2/3 approvals
# (0.667) meets 0.67.
_RATIO_TOLERANCE = 0.005


def approval_rate(critiques: Sequence[Critique]) -> float:
    """Fraction of critiques whose verdict is approve; 0.0 for no critiques."""
    if not critiques:
        return 0.0
    approvals = sum(1 for c in critiques if c.verdict == Verdict.APPROVE)
    return approvals / len(critiques)


def check_consensus(critiques: Sequence[Critique], threshold: float) -> bool:
    """True iff the approval ratio reaches threshold. Never true with no critiques."""
    if not critiques:
        return False
    return approval_rate(critiques) + _RATIO_TOLERANCE >= threshold
