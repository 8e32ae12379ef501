"""Tests for spec_debate/consensus.py."""

import pytest

from spec_debate.consensus import approval_rate, check_consensus
from spec_debate.models import Verdict
from tests.conftest import make_critique

A = Verdict.APPROVE
N = Verdict.NEEDS_CHANGES
R = Verdict.REJECT


@pytest.mark.parametrize("threshold", [0.01, 0.5, 0.67, 1.0])
def test_no_critiques_never_agree(threshold):
    assert check_consensus([], threshold) is False


def test_two_of_three_meets_two_thirds():
    critiques = [make_critique(A), make_critique(A), make_critique(N)]
    assert check_consensus(critiques, 0.67) is True


def test_two_of_three_misses_seventy_percent():
    critiques = [make_critique(A), make_critique(A), make_critique(N)]
    assert check_consensus(critiques, 0.7) is False


def test_needs_changes_gets_no_partial_credit():
    critiques = [make_critique(N), make_critique(N), make_critique(A)]
    assert check_consensus(critiques, 0.5) is False


def test_unanimous_required():
    assert check_consensus([make_critique(A)] * 4, 1.0) is True
    assert check_consensus([make_critique(A)] * 3 + [make_critique(R)], 1.0) is False


def test_approval_rate():
    assert approval_rate([]) == 0.0
    assert approval_rate([make_critique(A), make_critique(R)]) == 0.5
