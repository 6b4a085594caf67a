"""
Condition Evaluator

Evaluates the boolean expression attached to a rule against the calculation
facts. An expression is a tree of groups and leaf comparisons:

    {"all": [
        {"fact": "attainmentPercentage", "operator": "greaterThanInclusive", "value": 100},
        {"any": [
            {"fact": "deal", "path": "$.is_new_business", "operator": "equal", "value": True},
            {"fact": "deal", "path": "$.amount", "operator": "greaterThan", "value": 50000},
        ]},
    ]}

Evaluation is pure and short-circuits "all"/"any" groups.
"""

import logging
from datetime import date
from decimal import Decimal

from .models import parse_date
from .money import to_decimal

logger = logging.getLogger(__name__)

GROUP_KEYS = ("all", "any", "not")

_MISSING = object()


def _is_number(value) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _normalize(left, right):
    """Bring both sides to comparable types (Decimal for numbers, date for dates)."""
    if _is_number(left) and _is_number(right):
        return to_decimal(left), to_decimal(right)
    if isinstance(left, date) and isinstance(right, str):
        return left, parse_date(right)
    if isinstance(right, date) and isinstance(left, str):
        return parse_date(left), right
    return left, right


def _contains(container, item) -> bool:
    if container is None:
        return False
    return item in container


OPERATORS = {
    "equal": lambda a, b: a == b,
    "notEqual": lambda a, b: a != b,
    "greaterThan": lambda a, b: a > b,
    "greaterThanInclusive": lambda a, b: a >= b,
    "lessThan": lambda a, b: a < b,
    "lessThanInclusive": lambda a, b: a <= b,
    "in": lambda a, b: _contains(b, a),
    "notIn": lambda a, b: not _contains(b, a),
    "contains": lambda a, b: _contains(a, b),
    "doesNotContain": lambda a, b: not _contains(a, b),
}

# Operators whose operands are compared element-wise rather than normalized
_MEMBERSHIP = ("in", "notIn", "contains", "doesNotContain")
_LIST_OPERATORS = ("in", "notIn")


def _is_list_value(value) -> bool:
    """A list literal, or a reference to another fact resolved at evaluation time."""
    return isinstance(value, (list, tuple)) or (isinstance(value, dict) and "fact" in value)


def resolve_path(value, path: str | None):
    """Walk a '$.a.b' / 'a.b' / 'items.0' path into nested dicts and lists."""
    if not path:
        return value
    text = path[1:] if path.startswith("$") else path
    for part in (p for p in text.split(".") if p):
        if isinstance(value, dict):
            if part not in value:
                return _MISSING
            value = value[part]
        elif isinstance(value, (list, tuple)) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            value = getattr(value, part, _MISSING)
        if value is _MISSING:
            return _MISSING
    return value


class ConditionEvaluator:
    """Evaluates all/any/not condition trees against a fact dict."""

    def evaluate(self, conditions: dict | None, facts: dict) -> bool:
        if not conditions:
            return True
        return self._evaluate_node(conditions, facts)

    def _evaluate_node(self, node: dict, facts: dict) -> bool:
        if "all" in node:
            return all(self._evaluate_node(child, facts) for child in node["all"])
        if "any" in node:
            return any(self._evaluate_node(child, facts) for child in node["any"])
        if "not" in node:
            return not self._evaluate_node(node["not"], facts)
        return self._evaluate_leaf(node, facts)

    def _evaluate_leaf(self, leaf: dict, facts: dict) -> bool:
        operator = leaf.get("operator")
        compare = OPERATORS.get(operator)
        if compare is None:
            logger.warning(f"Unknown condition operator '{operator}', treating as false")
            return False

        fact_name = leaf.get("fact")
        actual = resolve_path(facts.get(fact_name, _MISSING), leaf.get("path"))
        if actual is _MISSING or actual is None:
            logger.debug(f"Fact '{fact_name}' (path {leaf.get('path')}) not available")
            return False

        expected = leaf.get("value")
        if isinstance(expected, dict) and "fact" in expected:
            expected = resolve_path(facts.get(expected["fact"], _MISSING), expected.get("path"))
            if expected is _MISSING:
                return False

        try:
            if operator in _MEMBERSHIP:
                if operator in _LIST_OPERATORS and _is_number(actual):
                    expected = [to_decimal(v) if _is_number(v) else v for v in expected or []]
                    actual = to_decimal(actual)
            else:
                actual, expected = _normalize(actual, expected)
            return bool(compare(actual, expected))
        except (TypeError, ValueError):
            logger.debug(f"Cannot compare {actual!r} {operator} {expected!r}")
            return False

    def validate(self, conditions: dict | None) -> list[str]:
        """Return a list of structural problems (empty when valid)."""
        if conditions is None:
            return []
        if not isinstance(conditions, dict):
            return ["conditions must be an object"]
        problems: list[str] = []
        self._validate_node(conditions, "conditions", problems)
        return problems

    def _validate_node(self, node, where: str, problems: list[str]) -> None:
        if not isinstance(node, dict):
            problems.append(f"{where} must be an object")
            return
        groups = [key for key in GROUP_KEYS if key in node]
        if len(groups) > 1:
            problems.append(f"{where} mixes group keys {groups}")
            return
        if groups:
            key = groups[0]
            if key == "not":
                self._validate_node(node["not"], f"{where}.not", problems)
                return
            children = node[key]
            if not isinstance(children, list):
                problems.append(f"{where}.{key} must be a list")
                return
            for i, child in enumerate(children):
                self._validate_node(child, f"{where}.{key}[{i}]", problems)
            return

        if not node.get("fact"):
            problems.append(f"{where} is missing 'fact'")
        if node.get("operator") not in OPERATORS:
            problems.append(f"{where} has unknown operator '{node.get('operator')}'")
        if "value" not in node:
            problems.append(f"{where} is missing 'value'")
        elif node.get("operator") in _LIST_OPERATORS and not _is_list_value(node["value"]):
            problems.append(f"{where} operator '{node['operator']}' needs a list value")
