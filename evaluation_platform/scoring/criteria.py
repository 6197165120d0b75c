# evaluation_platform/scoring/criteria.py
"""
Criterion Weight Model
----------------------
One canonical in-memory representation for weighted criteria, shared by the
step pipeline and demo-day judging: an ordered list of CriterionWeight.

Accepted inputs (normalized once, at the boundary):
    - a list of {key|id, label|name, weight, order} objects
    - the same list JSON-encoded as a string
    - an index-keyed object {"0": {...}, "1": {...}}
    - a flat weight map {key: weight} (labels are generated by capitalizing the key)

A criterion with no weight defaults to 1.0. A weight that is present must be > 0.
"""
import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from evaluation_platform.core.exceptions import CriteriaValidationException
from evaluation_platform.scoring.utils import to_decimal

DEFAULT_WEIGHT = Decimal("1.0")

# Demo-day weights used when an event carries no scoring configuration at all
DEFAULT_DEMO_DAY_WEIGHTS: Dict[str, Decimal] = {
    "innovation":   Decimal("20"),
    "execution":    Decimal("20"),
    "marketSize":   Decimal("20"),
    "team":         Decimal("20"),
    "presentation": Decimal("20"),
}

_NON_KEY_CHARS = re.compile(r"[^0-9a-zA-Z]+")


@dataclass(frozen=True)
class CriterionWeight:
    """A named, weighted scoring dimension."""
    key: str              # criterion id (steps) or config key (demo day)
    label: str
    weight: Decimal       # > 0, no upper bound
    order: int = 0        # display only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "weight": float(self.weight),
            "order": self.order,
        }


def coerce_json(value: Any, field_name: str = "value") -> Any:
    """Decode a JSON-encoded string; any other value is returned unchanged."""
    if not isinstance(value, str):
        return value
    if not value.strip():
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise CriteriaValidationException(
            f"{field_name} is not valid JSON",
            {"field": field_name, "error": str(e)},
        ) from None


def capitalize_key(key: str) -> str:
    return key[:1].upper() + key[1:]


def _key_from_label(label: str) -> str:
    return _NON_KEY_CHARS.sub("_", label.strip()).strip("_").lower()


def _parse_weight(raw: Any, label: str) -> Decimal:
    if raw is None:
        return DEFAULT_WEIGHT
    try:
        weight = to_decimal(raw)
    except ValueError:
        raise CriteriaValidationException(
            f"Weight for criterion '{label}' is not a number",
            {"criterion": label, "weight": str(raw)},
        ) from None
    if weight <= 0:
        raise CriteriaValidationException(
            f"Weight for criterion '{label}' must be positive",
            {"criterion": label, "weight": str(raw)},
        )
    return weight


def _criterion_from_mapping(item: Mapping[str, Any], index: int) -> CriterionWeight:
    label = item.get("label") or item.get("name")
    if not isinstance(label, str) or not label.strip():
        raise CriteriaValidationException(
            f"Criterion at position {index} is missing a name",
            {"position": index},
        )
    label = label.strip()
    key = item.get("key") or item.get("id") or _key_from_label(label)
    return CriterionWeight(
        key=str(key),
        label=label,
        weight=_parse_weight(item.get("weight"), label),
        order=_parse_order(item.get("order"), label, index),
    )


def _parse_order(raw: Any, label: str, index: int) -> int:
    if raw is None:
        return index
    try:
        if isinstance(raw, bool):
            raise TypeError(raw)
        return int(raw)
    except (TypeError, ValueError):
        raise CriteriaValidationException(
            f"Order for criterion '{label}' must be an integer",
            {"criterion": label, "order": str(raw)},
        ) from None


def criteria_from_weight_map(weights: Mapping[str, Any]) -> List[CriterionWeight]:
    """Derive criteria from a flat {key: weight} map, keeping insertion order."""
    criteria = []
    for index, (key, raw_weight) in enumerate(weights.items()):
        if not str(key).strip():
            raise CriteriaValidationException(
                "Weight map contains an empty criterion key", {"position": index}
            )
        label = capitalize_key(str(key))
        criteria.append(
            CriterionWeight(
                key=str(key),
                label=label,
                weight=_parse_weight(raw_weight, label),
                order=index,
            )
        )
    return criteria


def normalize_criteria(raw: Any, field_name: str = "criteria") -> List[CriterionWeight]:
    """
    Normalize any accepted criteria representation into an ordered list.

    Raises CriteriaValidationException on an empty name, a non-positive
    weight, a duplicate key or an unrecognized shape.
    """
    value = coerce_json(raw, field_name)
    if value is None:
        return []

    if isinstance(value, Mapping):
        if value and all(isinstance(v, Mapping) for v in value.values()):
            # Index-keyed object: {"0": {...}, "1": {...}}
            try:
                ordered = [value[k] for k in sorted(value, key=lambda k: int(k))]
            except ValueError:
                ordered = list(value.values())
            criteria = [_criterion_from_mapping(item, i) for i, item in enumerate(ordered)]
        else:
            criteria = criteria_from_weight_map(value)
    elif isinstance(value, list):
        criteria = []
        for index, item in enumerate(value):
            if isinstance(item, CriterionWeight):
                criteria.append(item)
            elif isinstance(item, Mapping):
                criteria.append(_criterion_from_mapping(item, index))
            else:
                raise CriteriaValidationException(
                    f"Criterion at position {index} must be an object",
                    {"position": index},
                )
    else:
        raise CriteriaValidationException(
            f"{field_name} must be a list, an object or a JSON string",
            {"field": field_name},
        )

    seen = set()
    for c in criteria:
        if c.key in seen:
            raise CriteriaValidationException(
                f"Duplicate criterion key '{c.key}'", {"key": c.key}
            )
        seen.add(c.key)
    return criteria


def resolve_event_criteria(
    scoring_criteria: Any,
    scoring_weights: Any,
) -> List[CriterionWeight]:
    """
    Demo-day criteria: the structured array wins; otherwise fall back to the
    weight map; with neither configured, use DEFAULT_DEMO_DAY_WEIGHTS.
    """
    criteria = normalize_criteria(scoring_criteria, "scoringCriteria")
    if criteria:
        return criteria
    weights = coerce_json(scoring_weights, "scoringWeights")
    if weights:
        if not isinstance(weights, Mapping):
            raise CriteriaValidationException(
                "scoringWeights must be an object of {key: weight}",
                {"field": "scoringWeights"},
            )
        return criteria_from_weight_map(weights)
    return criteria_from_weight_map(DEFAULT_DEMO_DAY_WEIGHTS)


def total_weight(criteria: List[CriterionWeight]) -> Decimal:
    return sum((c.weight for c in criteria), Decimal("0"))


def collect_scores(
    criteria: List[CriterionWeight],
    raw_scores: Any,
    min_score: Decimal,
    max_score: Decimal,
) -> Dict[str, Decimal]:
    """
    Validate one evaluator's raw scores against a criteria list.

    Every criterion needs a value in [min_score, max_score]. Keys that name
    no criterion are dropped.
    """
    scores = coerce_json(raw_scores, "scores")
    if not isinstance(scores, Mapping):
        raise CriteriaValidationException("scores must be an object of {criterion: value}")
    if not criteria:
        raise CriteriaValidationException("No scoring criteria are configured")

    collected: Dict[str, Decimal] = {}
    for c in criteria:
        raw = scores.get(c.key)
        if raw is None:
            raise CriteriaValidationException(
                f"Missing score for criterion: {c.label}", {"criterion": c.key}
            )
        try:
            value = to_decimal(raw)
        except ValueError:
            raise CriteriaValidationException(
                f"Score for {c.label} is not a number", {"criterion": c.key}
            ) from None
        if value < min_score or value > max_score:
            raise CriteriaValidationException(
                f"Score for {c.label} must be between {min_score} and {max_score}",
                {"criterion": c.key, "value": str(value)},
            )
        collected[c.key] = value
    return collected


def parse_stored_scores(raw: Any) -> Dict[str, Decimal]:
    """Read a stored scores payload (native or JSON string) back into Decimals."""
    value = coerce_json(raw, "scores") or {}
    parsed: Dict[str, Decimal] = {}
    for key, v in value.items():
        try:
            parsed[str(key)] = to_decimal(v)
        except ValueError:
            # feedback/notes/isComplete style keys stored alongside scores
            continue
    return parsed
