"""
Composition polynomials for sumcheck.

A composition C(y_1, ..., y_k) combines the values of k multilinear witnesses
at one hypercube point. Sumcheck only needs three capabilities from it: the
input count, an upper bound on its total degree (which bounds each round
polynomial) and evaluation. Evaluation accepts scalars or equal-length
FieldArray vectors, so the prover evaluates a whole half-cube at once.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from sumfri.errors import ShapeError
from sumfri.primitives.field import embed


class Composition(ABC):
    """Polynomial C(y_1, ..., y_n_inputs) of bounded degree."""

    n_inputs: int

    @abstractmethod
    def degree(self) -> int:
        """Upper bound on the total degree."""

    @abstractmethod
    def _evaluate(self, values: Sequence):
        ...

    def evaluate(self, values: Sequence):
        """Evaluate at scalars or packed (array) inputs."""
        if len(values) != self.n_inputs:
            raise ShapeError(f"composition takes {self.n_inputs} inputs, got {len(values)}")
        return self._evaluate(values)


class ProductComposition(Composition):
    """y_1 * y_2 * ... * y_n."""

    def __init__(self, n: int):
        if n < 1:
            raise ShapeError(f"product needs at least one input, got {n}")
        self.n_inputs = n

    def degree(self) -> int:
        return self.n_inputs

    def _evaluate(self, values):
        result = values[0]
        for v in values[1:]:
            result = result * v
        return result

    def __repr__(self):
        return f"ProductComposition({self.n_inputs})"


class LinearComposition(Composition):
    """sum_i a_i y_i."""

    def __init__(self, coefficients: Sequence):
        if len(coefficients) == 0:
            raise ShapeError("linear composition needs at least one coefficient")
        self.coefficients = list(coefficients)
        self.n_inputs = len(self.coefficients)

    def degree(self) -> int:
        return 1

    def _evaluate(self, values):
        field = type(values[0])
        result = embed(self.coefficients[0], field) * values[0]
        for a, v in zip(self.coefficients[1:], values[1:]):
            result = result + embed(a, field) * v
        return result


class RandomLinearCombination(Composition):
    """
    sum_k c_k * C_k(inputs selected for part k).

    Args:
        parts: Compositions to combine
        coefficients: One combination coefficient per part
        input_map: Per part, the indices of the inputs it reads. Defaults to
            consecutive slices, i.e. part k reads the n_inputs of part k
            right after those of part k-1.
    """

    def __init__(
        self,
        parts: Sequence[Composition],
        coefficients: Sequence,
        input_map: Optional[Sequence[Sequence[int]]] = None,
    ):
        if len(parts) == 0:
            raise ShapeError("linear combination needs at least one part")
        if len(parts) != len(coefficients):
            raise ShapeError(f"{len(parts)} parts but {len(coefficients)} coefficients")
        self.parts = list(parts)
        self.coefficients = list(coefficients)

        if input_map is None:
            input_map = []
            offset = 0
            for part in self.parts:
                input_map.append(list(range(offset, offset + part.n_inputs)))
                offset += part.n_inputs
        if len(input_map) != len(self.parts):
            raise ShapeError(f"input map has {len(input_map)} entries for {len(self.parts)} parts")
        for part, indices in zip(self.parts, input_map):
            if len(indices) != part.n_inputs:
                raise ShapeError(f"part {part!r} takes {part.n_inputs} inputs, mapped {len(indices)}")
        self.input_map: List[List[int]] = [list(indices) for indices in input_map]
        self.n_inputs = max(max(indices) for indices in self.input_map) + 1

    def degree(self) -> int:
        return max(part.degree() for part in self.parts)

    def _evaluate(self, values):
        field = type(values[0])
        result = None
        for coeff, part, indices in zip(self.coefficients, self.parts, self.input_map):
            term = embed(coeff, field) * part.evaluate([values[i] for i in indices])
            result = term if result is None else result + term
        return result


class FunctionComposition(Composition):
    """Wraps a pure callable with a declared degree bound."""

    def __init__(self, fn: Callable[[Sequence], object], n_inputs: int, degree: int):
        if n_inputs < 1:
            raise ShapeError(f"composition needs at least one input, got {n_inputs}")
        if degree < 0:
            raise ShapeError(f"degree must be non-negative, got {degree}")
        self.fn = fn
        self.n_inputs = n_inputs
        self._degree = degree

    def degree(self) -> int:
        return self._degree

    def _evaluate(self, values):
        return self.fn(values)
