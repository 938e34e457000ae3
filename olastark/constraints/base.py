"""Constraint evaluation written once, instantiated for every arithmetic.

Tables and the lookup argument describe their constraints against the
ConstraintConsumer interface: they read frame values, lift integer constants
with consumer.constant() and hand each constraint to one of the four emit
methods. Operator overloading does the rest, so the same code runs on

- galois FF scalars, one trace row at a time (NativeConstraintConsumer),
- galois FF arrays over the whole LDE coset (FieldConstraintConsumer, prover),
- galois FF3 scalars at the out-of-domain point (FieldConstraintConsumer, verifier),
- symbolic expressions (CircuitConstraintConsumer in constraints.circuit).

Example:
    def eval_constraints(frame, cc):
        a, b = frame.local_values[0], frame.local_values[1]
        cc.constraint(a * b - cc.constant(6))
        cc.constraint_transition(frame.next_values[0] - a - cc.one)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from olastark.primitives.field import FF, GOLDILOCKS_PRIME

# --- Evaluation Frame ---


@dataclass
class EvaluationFrame:
    """Current and next row values in whatever representation the consumer uses."""
    local_values: Sequence[Any]
    next_values: Sequence[Any]


# --- Consumer Interface ---


class ConstraintConsumer(ABC):
    """Receives constraints; also the arithmetic capability for constants."""

    @abstractmethod
    def constant(self, value: int):
        """Lift an integer into this consumer's representation."""

    @property
    def zero(self):
        return self.constant(0)

    @property
    def one(self):
        return self.constant(1)

    @abstractmethod
    def _emit(self, kind: str, value) -> None:
        pass

    def constraint(self, value) -> None:
        """Enforce value == 0 on every row."""
        self._emit("all", value)

    def constraint_first_row(self, value) -> None:
        self._emit("first", value)

    def constraint_last_row(self, value) -> None:
        self._emit("last", value)

    def constraint_transition(self, value) -> None:
        """Enforce value == 0 on every row except the last."""
        self._emit("transition", value)


# --- Field Consumers ---


class FieldConstraintConsumer(ConstraintConsumer):
    """Accumulates alpha-combinations of filtered constraints.

    Works for scalars and arrays alike: selectors and values only need to
    support +, - and * in the same galois field. For each alpha the running
    accumulator is acc * alpha + filtered_constraint.
    """

    def __init__(self, field, alphas: Sequence[int], l_first, l_last, transition):
        self.field = field
        self.alphas = [field(int(a)) for a in alphas]
        self.selectors = {"first": l_first, "last": l_last, "transition": transition}
        self.accumulators: List[Any] = [field(0) for _ in alphas]
        self.count = 0

    def constant(self, value: int):
        return self.field(int(value) % GOLDILOCKS_PRIME)

    def _emit(self, kind: str, value) -> None:
        filtered = value if kind == "all" else self.selectors[kind] * value
        self.accumulators = [acc * alpha + filtered for acc, alpha in zip(self.accumulators, self.alphas)]
        self.count += 1


class NativeConstraintConsumer(ConstraintConsumer):
    """Checks constraints on a single concrete row.

    Row flags are known exactly, so each constraint is checked directly and
    every failure is recorded with its position in the emission order.
    """

    def __init__(self, is_first: bool, is_last: bool):
        self.active = {"all": True, "first": is_first, "last": is_last, "transition": not is_last}
        self.failures: List[int] = []
        self.count = 0

    def constant(self, value: int):
        return FF(int(value) % FF.order)

    def _emit(self, kind: str, value) -> None:
        if self.active[kind] and value != 0:
            self.failures.append(self.count)
        self.count += 1


def row_frame(rows: Sequence[Sequence[int]], index: int, next_index: Optional[int] = None) -> EvaluationFrame:
    """Native frame for row index of an integer trace (next row wraps around)."""
    if next_index is None:
        next_index = (index + 1) % len(rows)
    return EvaluationFrame(
        local_values=[FF(int(v) % FF.order) for v in rows[index]],
        next_values=[FF(int(v) % FF.order) for v in rows[next_index]],
    )
