"""
Label selector evaluation

Two selector shapes exist in the API: the plain ``{key: value}`` map used by
Services and the ``matchLabels``/``matchExpressions`` form used by
Deployments.
"""

from typing import Any, Dict, Mapping, Optional


class SelectorError(ValueError):
    """Raised when a label selector cannot be evaluated"""
    pass


def labels_match_map(labels: Optional[Mapping[str, str]], selector: Optional[Mapping[str, str]]) -> bool:
    """True if ``labels`` is a superset of ``selector``; an empty selector matches nothing"""
    if not selector:
        return False
    labels = labels or {}
    for key, value in selector.items():
        if labels.get(key) != value:
            return False
    return True


def _expression_matches(labels: Mapping[str, str], expression: Dict[str, Any]) -> bool:
    key = expression.get("key")
    operator = expression.get("operator")
    values = expression.get("values") or []

    if not key:
        raise SelectorError(f"matchExpression without key: {expression}")

    if operator == "In":
        if not values:
            raise SelectorError(f"operator In requires values for key {key}")
        return key in labels and labels[key] in values
    if operator == "NotIn":
        if not values:
            raise SelectorError(f"operator NotIn requires values for key {key}")
        return key not in labels or labels[key] not in values
    if operator == "Exists":
        return key in labels
    if operator == "DoesNotExist":
        return key not in labels

    raise SelectorError(f"unsupported selector operator {operator!r}")


def labels_match_selector(labels: Optional[Mapping[str, str]], selector: Optional[Dict[str, Any]]) -> bool:
    """Evaluate a ``matchLabels``/``matchExpressions`` selector

    Every matchLabels pair must be present and equal and every expression
    must evaluate true. A missing or empty selector matches nothing.

    Raises:
        SelectorError: When an expression is malformed or uses an unknown operator
    """
    if not selector:
        return False

    match_labels = selector.get("matchLabels") or {}
    match_expressions = selector.get("matchExpressions") or []
    if not match_labels and not match_expressions:
        return False

    labels = labels or {}
    for key, value in match_labels.items():
        if labels.get(key) != value:
            return False

    return all(_expression_matches(labels, expr) for expr in match_expressions)
