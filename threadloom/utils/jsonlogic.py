"""
JSONLogic evaluator for caller-supplied loop predicates
"""

from typing import Any, Dict

import json_logic as jsonlogic

# Operators accepted in a predicate document
VALID_OPERATORS = {
    "==",
    "!=",
    "<",
    ">",
    "<=",
    ">=",
    "and",
    "or",
    "!",
    "!!",
    "in",
    "cat",
    "+",
    "-",
    "*",
    "/",
    "%",
    "if",
    "var",
    "some",
    "all",
    "none",
}


class JSONLogicEvaluator:
    """Evaluates JSONLogic expressions against a plain-dict context"""

    def __init__(self):
        self.evaluator = jsonlogic

    def evaluate(self, expression: Dict[str, Any], context: Dict[str, Any]) -> Any:
        """Evaluate a JSONLogic expression against context"""

        try:
            return self.evaluator.jsonLogic(expression, context)
        except Exception as e:
            raise ValueError(f"JSONLogic evaluation failed: {e}")

    def evaluate_condition(
        self, condition: Dict[str, Any], context: Dict[str, Any]
    ) -> bool:
        """Evaluate a condition and return boolean result"""

        return bool(self.evaluate(condition, context))

    def validate_expression(self, expression: Dict[str, Any]) -> bool:
        """Check that an expression is a dict rooted at a known operator"""

        if not isinstance(expression, dict) or len(expression) != 1:
            return False
        return next(iter(expression)) in VALID_OPERATORS
