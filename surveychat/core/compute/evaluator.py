"""Restricted evaluation of model-supplied expressions against the dataset."""

from typing import Any, Dict, List
import ast
import logging

import numpy as np
import pandas as pd

from surveychat.core.rows.store import RowStore
from surveychat.utils.exceptions import ExpressionEvaluationException

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 2000
MAX_RESULT_LENGTH = 4000

BANNED_CALLS = {
    "open",
    "eval",
    "exec",
    "compile",
    "getattr",
    "setattr",
    "delattr",
    "globals",
    "locals",
    "vars",
    "input",
    "breakpoint",
    "exit",
    "quit",
    "help",
}

# pandas/numpy entry points that touch the filesystem, run code or reach
# into submodules
BANNED_ATTRIBUTES = {
    "eval",
    "query",
    "pipe",
    "format",
    "format_map",
    "load",
    "save",
    "savez",
    "savez_compressed",
    "savetxt",
    "loadtxt",
    "genfromtxt",
    "fromfile",
    "fromregex",
    "tofile",
    "memmap",
    "DataSource",
    "ExcelFile",
    "ExcelWriter",
    "HDFStore",
    "io",
    "lib",
    "ctypeslib",
    "testing",
    "f2py",
    "style",
    "plot",
    "hist",
    "boxplot",
}

# read_*/to_*/from_* are mostly file readers and writers; only these pass
IO_PREFIXES = ("read_", "to_", "from_")
ALLOWED_PREFIXED_ATTRIBUTES = {
    "to_numeric",
    "to_datetime",
    "to_timedelta",
    "to_list",
    "to_dict",
    "to_frame",
    "to_numpy",
}

BANNED_KEYWORDS = {
    "buf",
    "path",
    "path_or_buf",
    "filepath_or_buffer",
    "fname",
    "file",
    "filename",
}

ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.BinOp,
    ast.UnaryOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.keyword,
    ast.Attribute,
    ast.Subscript,
    ast.Slice,
    ast.Name,
    ast.Constant,
    ast.List,
    ast.Tuple,
    ast.Dict,
    ast.Set,
    ast.ListComp,
    ast.SetComp,
    ast.DictComp,
    ast.GeneratorExp,
    ast.comprehension,
    ast.Lambda,
    ast.arguments,
    ast.arg,
    ast.Starred,
    ast.JoinedStr,
    ast.FormattedValue,
    ast.expr_context,
    ast.boolop,
    ast.operator,
    ast.unaryop,
    ast.cmpop,
)

SAFE_BUILTINS = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "enumerate": enumerate,
    "filter": filter,
    "float": float,
    "int": int,
    "isinstance": isinstance,
    "len": len,
    "list": list,
    "map": map,
    "max": max,
    "min": min,
    "range": range,
    "round": round,
    "set": set,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
}


def _check_attribute(name: str) -> None:
    if name.startswith("_"):
        raise ExpressionEvaluationException(f"Attribute '{name}' is not allowed")
    if name in BANNED_ATTRIBUTES:
        raise ExpressionEvaluationException(f"Attribute '{name}' is banned")
    if name.startswith(IO_PREFIXES) and name not in ALLOWED_PREFIXED_ATTRIBUTES:
        raise ExpressionEvaluationException(f"Attribute '{name}' is banned")


def validate_expression(expression: str) -> ast.Expression:
    """
    Parse an expression and reject anything outside the whitelist.

    Only expression syntax is accepted (no statements, walrus or await),
    names may not be dunders or banned builtins, and attribute access is
    limited to non-private names that do not read or write files.

    Args:
        expression: Single Python expression

    Returns:
        Parsed expression tree

    Raises:
        ExpressionEvaluationException: If the expression is unsafe or invalid
    """
    if not expression or not expression.strip():
        raise ExpressionEvaluationException("Expression is empty")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionEvaluationException("Expression is too long")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionEvaluationException(f"Syntax error: {e.msg}")

    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise ExpressionEvaluationException(f"'{type(node).__name__}' is not allowed")
        if isinstance(node, ast.Name):
            if node.id.startswith("__"):
                raise ExpressionEvaluationException(f"Name '{node.id}' is not allowed")
            if node.id in BANNED_CALLS:
                raise ExpressionEvaluationException(f"Function '{node.id}' is banned")
        elif isinstance(node, ast.arg) and node.arg.startswith("__"):
            raise ExpressionEvaluationException(f"Name '{node.arg}' is not allowed")
        elif isinstance(node, ast.Attribute):
            _check_attribute(node.attr)
        elif isinstance(node, ast.keyword) and node.arg in BANNED_KEYWORDS:
            raise ExpressionEvaluationException(f"Keyword '{node.arg}' is banned")

    return tree


def format_result(value: Any) -> str:
    """Turn an evaluation result into reply text."""
    if isinstance(value, (pd.DataFrame, pd.Series)):
        text = value.to_string()
    elif isinstance(value, np.generic):
        return format_result(value.item())
    elif isinstance(value, float):
        text = f"{value:,.2f}" if not value.is_integer() else f"{int(value):,}"
    else:
        text = str(value)

    if len(text) > MAX_RESULT_LENGTH:
        text = text[:MAX_RESULT_LENGTH] + "\n..."
    return text


class ExpressionEvaluator:
    """Evaluates whitelisted expressions with ``df``, ``rows``, ``pd`` and ``np`` in scope."""

    def __init__(self, store: RowStore):
        self.store = store

    def _namespace(self) -> Dict[str, Any]:
        rows: List[Dict[str, str]] = self.store.to_records()
        return {"df": self.store.dataframe(), "rows": rows, "pd": pd, "np": np}

    def evaluate(self, expression: str) -> Any:
        tree = validate_expression(expression)
        code = compile(tree, "<compute>", "eval")
        # names live in globals so comprehensions can see them
        scope = {"__builtins__": SAFE_BUILTINS, **self._namespace()}
        try:
            return eval(code, scope)
        except Exception as e:
            logger.error(f"Compute error: {e}")
            raise ExpressionEvaluationException(f"Evaluation failed: {e}")

    def evaluate_to_text(self, expression: str) -> str:
        return format_result(self.evaluate(expression))
