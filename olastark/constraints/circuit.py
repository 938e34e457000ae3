"""Symbolic constraint representation for recursive verification.

A CircuitConstraintConsumer records every emitted constraint as an expression
DAG instead of a value. The DAG can be evaluated later under any galois field
(to cross-check the native and packed consumers) and inspected for its degree
(to check tables against the configured degree bound).
"""

from typing import Any, Dict, Hashable, List, Tuple

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.primitives.field import GOLDILOCKS_PRIME


class Expr:
    """Node of an arithmetic expression over the base field."""

    __slots__ = ("op", "args", "key")

    def __init__(self, op: str, args: Tuple = (), key: Hashable = None):
        self.op = op
        self.args = args
        self.key = key

    def __add__(self, other: "Expr") -> "Expr":
        return Expr("add", (self, other))

    def __sub__(self, other: "Expr") -> "Expr":
        return Expr("sub", (self, other))

    def __mul__(self, other: "Expr") -> "Expr":
        return Expr("mul", (self, other))

    def __neg__(self) -> "Expr":
        return Expr("sub", (Expr("const", key=0), self))

    def __repr__(self) -> str:
        if self.op == "var":
            return f"v{self.key}"
        if self.op == "const":
            return str(self.key)
        sym = {"add": "+", "sub": "-", "mul": "*"}[self.op]
        return f"({self.args[0]!r} {sym} {self.args[1]!r})"

    def degree(self, memo=None) -> int:
        if memo is None:
            memo = {}
        cached = memo.get(id(self))
        if cached is not None:
            return cached
        if self.op == "var":
            d = 1
        elif self.op == "const":
            d = 0
        elif self.op == "mul":
            d = self.args[0].degree(memo) + self.args[1].degree(memo)
        else:
            d = max(self.args[0].degree(memo), self.args[1].degree(memo))
        memo[id(self)] = d
        return d

    def evaluate(self, env: Dict[Hashable, Any], field, memo=None):
        """Evaluate with variables taken from env, constants lifted into field."""
        if memo is None:
            memo = {}
        cached = memo.get(id(self))
        if cached is not None:
            return cached
        if self.op == "var":
            out = env[self.key]
        elif self.op == "const":
            out = field(self.key)
        else:
            a = self.args[0].evaluate(env, field, memo)
            b = self.args[1].evaluate(env, field, memo)
            if self.op == "add":
                out = a + b
            elif self.op == "sub":
                out = a - b
            else:
                out = a * b
        memo[id(self)] = out
        return out


def var(key: Hashable) -> Expr:
    return Expr("var", key=key)


def circuit_frame(width: int, prefix: str = "") -> EvaluationFrame:
    """Frame of free variables ('local', i) / ('next', i), optionally namespaced."""
    return EvaluationFrame(
        local_values=[var((prefix + "local", i)) for i in range(width)],
        next_values=[var((prefix + "next", i)) for i in range(width)],
    )


class CircuitConstraintConsumer(ConstraintConsumer):
    """Records (kind, expression) pairs in emission order."""

    def __init__(self):
        self.constraints: List[Tuple[str, Expr]] = []
        self._constants: Dict[int, Expr] = {}

    def constant(self, value: int) -> Expr:
        v = int(value) % GOLDILOCKS_PRIME
        if v not in self._constants:
            self._constants[v] = Expr("const", key=v)
        return self._constants[v]

    def _emit(self, kind: str, value) -> None:
        self.constraints.append((kind, value))

    def max_degree(self) -> int:
        """Degree of the worst constraint.

        First- and last-row selectors are Lagrange polynomials and count as
        degree 1; the transition selector x - g^(n-1) is linear in x and adds nothing.
        """
        memo: dict = {}
        return max(
            (expr.degree(memo) + (1 if kind in ("first", "last") else 0) for kind, expr in self.constraints),
            default=0,
        )

    def evaluate(self, env: Dict[Hashable, Any], field, alphas, selectors: Dict[str, Any]) -> List[Any]:
        """Replay the recorded constraints exactly as FieldConstraintConsumer would."""
        memo: dict = {}
        alphas = [field(int(a)) for a in alphas]
        accs = [field(0) for _ in alphas]
        for kind, expr in self.constraints:
            value = expr.evaluate(env, field, memo)
            filtered = value if kind == "all" else selectors[kind] * value
            accs = [acc * alpha + filtered for acc, alpha in zip(accs, alphas)]
        return accs
