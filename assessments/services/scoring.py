"""Final score aggregation for an attempt."""
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CompleteAttemptResult:
    """The only fields an attempt receives when it is finalized."""

    score: Decimal
    percentage: Decimal
    passed: bool
    completed_at: datetime


def _quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def aggregate_score(
    awarded_scores: Iterable[Decimal],
    max_score: Decimal,
    passing_percentage: Decimal,
    completed_at: datetime,
) -> CompleteAttemptResult:
    """
    Sum awarded scores against the attempt's frozen ``max_score``.

    Unanswered questions simply have no score in ``awarded_scores``. The total
    is capped at ``max_score`` so the percentage stays within [0, 100], and the
    pass verdict is taken from the stored (rounded) percentage so that a
    percentage equal to the passing mark always passes. A raw 66.666% therefore
    passes a 66.67 mark here, where comparing the unrounded percentage would fail it.
    """
    max_score = Decimal(max_score)
    total = sum((Decimal(score) for score in awarded_scores if score is not None), ZERO)
    total = max(ZERO, min(total, max_score))

    if max_score > 0:
        percentage = _quantize(total / max_score * HUNDRED)
    else:
        percentage = ZERO

    return CompleteAttemptResult(
        score=_quantize(total),
        percentage=percentage,
        passed=percentage >= Decimal(passing_percentage),
        completed_at=completed_at,
    )
