# tests/test_quorum.py
"""
Quorum Validator Tests

met ⇔ count ≥ pool or count × 100 ≥ pct × pool, compared exactly.
"""

from decimal import Decimal

import pytest

from evaluation_platform.scoring.quorum import NO_POOL_MESSAGE, QuorumValidator


@pytest.fixture
def validator():
    return QuorumValidator()


class TestQuorumValidator:

    def test_three_of_four_at_75_percent_is_met(self, validator):
        result = validator.validate(3, 4, 75)
        assert result.meets_requirement is True
        assert result.required_evaluators == 3
        assert result.evaluator_percentage == Decimal("75")
        assert result.validity_message is None

    def test_two_of_four_at_75_percent_is_not_met(self, validator):
        result = validator.validate(2, 4, 75)
        assert result.meets_requirement is False
        assert result.validity_message == (
            "Only 2 of 4 evaluators have scored (need 75% = 3 evaluators)"
        )

    def test_full_pool_always_met(self, validator):
        assert validator.validate(4, 4, 100).meets_requirement is True

    def test_hundred_percent_needs_everyone(self, validator):
        result = validator.validate(3, 4, 100)
        assert result.meets_requirement is False
        assert result.required_evaluators == 4
        assert "need 100% = 4 evaluators" in result.validity_message

    @pytest.mark.parametrize("pool", [None, 0])
    def test_missing_pool_is_never_met(self, validator, pool):
        result = validator.validate(5, pool, 75)
        assert result.meets_requirement is False
        assert result.validity_message == NO_POOL_MESSAGE
        assert result.required_evaluators is None

    def test_pool_shrink_counts_all_scores(self, validator):
        # 5 scores were recorded before the pool shrank to 4
        result = validator.validate(5, 4, 75)
        assert result.meets_requirement is True
        assert result.evaluator_percentage == Decimal("100")

    def test_comparison_is_exact_not_float(self, validator):
        # 2 × 100 = 200 < 66.67 × 3 = 200.01
        result = validator.validate(2, 3, Decimal("66.67"))
        assert result.meets_requirement is False
        assert result.required_evaluators == 3

    def test_one_third_boundary(self, validator):
        assert validator.validate(1, 3, Decimal("33.33")).meets_requirement is True
        assert validator.validate(1, 3, Decimal("33.34")).meets_requirement is False

    def test_zero_percent_requirement(self, validator):
        result = validator.validate(0, 4, 0)
        assert result.meets_requirement is True
        assert result.required_evaluators == 0

    def test_float_percentage_accepted(self, validator):
        assert validator.validate(3, 4, 75.0).meets_requirement is True

    def test_negative_count_rejected(self, validator):
        with pytest.raises(ValueError):
            validator.validate(-1, 4, 75)
