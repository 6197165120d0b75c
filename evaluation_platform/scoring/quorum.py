"""
scoring/quorum.py

Decides whether enough evaluators have scored a submission for its aggregate
to be trusted.

Rule:
    met  ⇔  evaluator_count ≥ total_judges
         or  evaluator_count × 100 ≥ required_percentage × total_judges

The comparison is exact (Decimal, no division), so 3 of 4 at 75% is met.
A missing or empty judge pool is never met. evaluator_count may exceed
total_judges when the pool shrank after scoring began; the reported
percentage is clamped to 100.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING
from typing import Optional

from evaluation_platform.scoring.utils import clamp, round_display, to_decimal

logger = logging.getLogger(__name__)

NO_POOL_MESSAGE = "No judge pool configured for this step"


def _fmt(value: Decimal) -> str:
    return f"{value.normalize():f}"


@dataclass
class QuorumResult:
    """Output of QuorumValidator.validate()."""
    evaluator_count: int
    total_judges: Optional[int]
    required_percentage: Decimal
    evaluator_percentage: Decimal         # clamped to [0, 100]
    required_evaluators: Optional[int]    # ceil(pct / 100 × pool)
    meets_requirement: bool
    validity_message: Optional[str]


class QuorumValidator:
    """Check the evaluator-percentage rule for one (submission, step)."""

    def validate(
        self,
        evaluator_count: int,
        total_judges: Optional[int],
        required_percentage,
    ) -> QuorumResult:
        if evaluator_count < 0:
            raise ValueError(f"evaluator_count must be >= 0, got {evaluator_count}")
        pct = to_decimal(required_percentage)

        if not total_judges or total_judges <= 0:
            return QuorumResult(
                evaluator_count=evaluator_count,
                total_judges=total_judges,
                required_percentage=pct,
                evaluator_percentage=Decimal("0"),
                required_evaluators=None,
                meets_requirement=False,
                validity_message=NO_POOL_MESSAGE,
            )

        count = Decimal(evaluator_count)
        pool = Decimal(total_judges)
        required = int((pct * pool / Decimal("100")).to_integral_value(rounding=ROUND_CEILING))
        met = evaluator_count >= total_judges or count * Decimal("100") >= pct * pool
        percentage = clamp(count * Decimal("100") / pool, Decimal("0"), Decimal("100"))

        message = None
        if not met:
            message = (
                f"Only {evaluator_count} of {total_judges} evaluators have scored "
                f"(need {_fmt(pct)}% = {required} evaluators)"
            )

        logger.debug(
            "quorum_checked",
            extra={
                "evaluator_count": evaluator_count,
                "total_judges": total_judges,
                "required_percentage": float(pct),
                "evaluator_percentage": float(round_display(percentage)),
                "meets_requirement": met,
            },
        )

        return QuorumResult(
            evaluator_count=evaluator_count,
            total_judges=total_judges,
            required_percentage=pct,
            evaluator_percentage=percentage,
            required_evaluators=required,
            meets_requirement=met,
            validity_message=message,
        )
