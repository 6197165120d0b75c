# tests/test_criteria.py
"""
Criterion Weight Model Tests

Covers every accepted criteria representation, weight validation, demo-day
criteria resolution and per-evaluator score collection.
"""

import json
from decimal import Decimal

import pytest

from evaluation_platform.core.exceptions import CriteriaValidationException
from evaluation_platform.scoring.criteria import (
    DEFAULT_DEMO_DAY_WEIGHTS,
    CriterionWeight,
    capitalize_key,
    coerce_json,
    collect_scores,
    normalize_criteria,
    parse_stored_scores,
    resolve_event_criteria,
    total_weight,
)


# =============================================================================
# NORMALIZATION
# =============================================================================

class TestNormalizeCriteria:

    def test_native_list(self):
        criteria = normalize_criteria([
            {"id": "c1", "name": "Market", "weight": 2},
            {"id": "c2", "name": "Team", "weight": 1.5},
        ])
        assert [c.key for c in criteria] == ["c1", "c2"]
        assert [c.label for c in criteria] == ["Market", "Team"]
        assert criteria[0].weight == Decimal("2")
        assert criteria[1].weight == Decimal("1.5")

    def test_json_string_matches_native_list(self):
        raw = [{"id": "c1", "name": "Market", "weight": 2}]
        assert normalize_criteria(json.dumps(raw)) == normalize_criteria(raw)

    def test_index_keyed_object_is_ordered_by_index(self):
        criteria = normalize_criteria({
            "1": {"id": "b", "name": "Second"},
            "0": {"id": "a", "name": "First"},
        })
        assert [c.key for c in criteria] == ["a", "b"]

    def test_weight_map(self):
        criteria = normalize_criteria({"innovation": 30, "team": 70})
        assert [c.key for c in criteria] == ["innovation", "team"]
        assert criteria[0].label == "Innovation"
        assert total_weight(criteria) == Decimal("100")

    def test_missing_weight_defaults_to_one(self):
        criteria = normalize_criteria([{"name": "Product"}])
        assert criteria[0].weight == Decimal("1.0")

    def test_key_generated_from_label(self):
        criteria = normalize_criteria([{"name": "Market Size"}])
        assert criteria[0].key == "market_size"

    def test_weights_have_no_upper_bound(self):
        criteria = normalize_criteria([{"name": "Vision", "weight": 1000}])
        assert criteria[0].weight == Decimal("1000")

    def test_none_and_blank_are_empty(self):
        assert normalize_criteria(None) == []
        assert normalize_criteria("  ") == []

    @pytest.mark.parametrize("weight", [0, -1, "-0.5"])
    def test_non_positive_weight_rejected(self, weight):
        with pytest.raises(CriteriaValidationException) as exc:
            normalize_criteria([{"name": "Market", "weight": weight}])
        assert "must be positive" in exc.value.message

    def test_non_numeric_weight_rejected(self):
        with pytest.raises(CriteriaValidationException):
            normalize_criteria([{"name": "Market", "weight": "heavy"}])

    def test_empty_name_rejected(self):
        with pytest.raises(CriteriaValidationException) as exc:
            normalize_criteria([{"name": "   ", "weight": 1}])
        assert "missing a name" in exc.value.message

    def test_duplicate_key_rejected(self):
        with pytest.raises(CriteriaValidationException):
            normalize_criteria([{"id": "c1", "name": "A"}, {"id": "c1", "name": "B"}])

    def test_invalid_json_rejected(self):
        with pytest.raises(CriteriaValidationException):
            normalize_criteria("[{not json")

    def test_unsupported_shape_rejected(self):
        with pytest.raises(CriteriaValidationException):
            normalize_criteria(42)

    def test_bool_weight_rejected(self):
        with pytest.raises(CriteriaValidationException):
            normalize_criteria([{"name": "Market", "weight": True}])

    def test_explicit_order_kept(self):
        criteria = normalize_criteria([{"name": "Market", "order": "3"}, {"name": "Team"}])
        assert [c.order for c in criteria] == [3, 1]

    @pytest.mark.parametrize("order", ["first", True, [1]])
    def test_non_integer_order_rejected(self, order):
        with pytest.raises(CriteriaValidationException) as exc:
            normalize_criteria([{"label": "Vision", "weight": 2, "order": order}])
        assert exc.value.error_code == "VALIDATION_ERROR"
        assert "Order for criterion 'Vision'" in exc.value.message

    def test_event_criteria_with_bad_order_rejected(self):
        with pytest.raises(CriteriaValidationException):
            resolve_event_criteria([{"label": "Vision", "weight": 2, "order": "first"}], None)


class TestHelpers:

    def test_capitalize_key(self):
        assert capitalize_key("marketSize") == "MarketSize"
        assert capitalize_key("") == ""

    def test_coerce_json_passthrough(self):
        value = {"a": 1}
        assert coerce_json(value) is value

    def test_coerce_json_decodes_strings(self):
        assert coerce_json('{"a": 1}') == {"a": 1}


# =============================================================================
# DEMO-DAY RESOLUTION
# =============================================================================

class TestResolveEventCriteria:

    def test_structured_criteria_win_over_weights(self):
        criteria = resolve_event_criteria(
            [{"key": "vision", "label": "Vision", "weight": 5}],
            {"innovation": 50},
        )
        assert [c.key for c in criteria] == ["vision"]

    def test_weight_map_used_when_no_structured_criteria(self):
        criteria = resolve_event_criteria(None, '{"innovation": 40, "team": 60}')
        assert [c.key for c in criteria] == ["innovation", "team"]

    def test_defaults_when_nothing_configured(self):
        criteria = resolve_event_criteria(None, None)
        assert [c.key for c in criteria] == list(DEFAULT_DEMO_DAY_WEIGHTS)
        assert all(c.weight == Decimal("20") for c in criteria)
        assert criteria[2].label == "MarketSize"

    def test_weights_must_be_an_object(self):
        with pytest.raises(CriteriaValidationException):
            resolve_event_criteria(None, "[1, 2]")


# =============================================================================
# SCORE COLLECTION
# =============================================================================

CRITERIA = [
    CriterionWeight(key="c1", label="Market", weight=Decimal("2")),
    CriterionWeight(key="c2", label="Team", weight=Decimal("1"), order=1),
]


class TestCollectScores:

    def test_valid_scores(self):
        scores = collect_scores(CRITERIA, {"c1": 8, "c2": "6.5"}, Decimal("1"), Decimal("10"))
        assert scores == {"c1": Decimal("8"), "c2": Decimal("6.5")}

    def test_unknown_keys_dropped(self):
        scores = collect_scores(CRITERIA, {"c1": 8, "c2": 6, "zz": 3}, Decimal("1"), Decimal("10"))
        assert "zz" not in scores

    def test_missing_criterion_rejected(self):
        with pytest.raises(CriteriaValidationException) as exc:
            collect_scores(CRITERIA, {"c1": 8}, Decimal("1"), Decimal("10"))
        assert exc.value.message == "Missing score for criterion: Team"

    @pytest.mark.parametrize("value", [0, 11, "10.01", 0.99])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(CriteriaValidationException):
            collect_scores(CRITERIA, {"c1": value, "c2": 5}, Decimal("1"), Decimal("10"))

    @pytest.mark.parametrize("value", [1, 10])
    def test_range_is_inclusive(self, value):
        scores = collect_scores(CRITERIA, {"c1": value, "c2": 5}, Decimal("1"), Decimal("10"))
        assert scores["c1"] == Decimal(value)

    def test_non_numeric_rejected(self):
        with pytest.raises(CriteriaValidationException):
            collect_scores(CRITERIA, {"c1": "great", "c2": 5}, Decimal("1"), Decimal("10"))

    def test_scores_must_be_object(self):
        with pytest.raises(CriteriaValidationException):
            collect_scores(CRITERIA, [8, 6], Decimal("1"), Decimal("10"))

    def test_json_string_scores(self):
        scores = collect_scores(CRITERIA, '{"c1": 8, "c2": 6}', Decimal("1"), Decimal("10"))
        assert scores["c2"] == Decimal("6")


class TestParseStoredScores:

    def test_skips_non_numeric_entries(self):
        parsed = parse_stored_scores({"innovation": 8, "feedback": "great", "isComplete": True})
        assert parsed == {"innovation": Decimal("8")}

    def test_json_string(self):
        assert parse_stored_scores('{"team": "7.5"}') == {"team": Decimal("7.5")}

    def test_empty(self):
        assert parse_stored_scores(None) == {}
