"""Tests for composition polynomials."""

import numpy as np
import pytest

from sumfri.errors import ShapeError
from sumfri.primitives.field import FF, FF3
from sumfri.protocol.composition import (
    FunctionComposition,
    LinearComposition,
    ProductComposition,
    RandomLinearCombination,
)


class TestCompositions:

    def test_product(self) -> None:
        c = ProductComposition(3)
        assert c.degree() == 3
        assert c.evaluate([FF(2), FF(3), FF(4)]) == FF(24)

    def test_linear(self) -> None:
        c = LinearComposition([FF(1), FF(2)])
        assert c.degree() == 1
        assert c.evaluate([FF(5), FF(7)]) == FF(19)

    def test_linear_lifts_coefficients(self) -> None:
        c = LinearComposition([FF(2)])
        x = FF3.Random(seed=1)
        assert c.evaluate([x]) == FF3(2) * x

    def test_random_linear_combination_default_map(self) -> None:
        c = RandomLinearCombination(
            [ProductComposition(2), LinearComposition([FF(1)])],
            [FF(10), FF(100)],
        )
        assert c.n_inputs == 3
        assert c.degree() == 2
        assert c.evaluate([FF(2), FF(3), FF(4)]) == FF(10 * 6 + 100 * 4)

    def test_random_linear_combination_shared_inputs(self) -> None:
        c = RandomLinearCombination(
            [ProductComposition(2), ProductComposition(2)],
            [FF(1), FF(2)],
            input_map=[[0, 2], [1, 2]],
        )
        assert c.n_inputs == 3
        assert c.evaluate([FF(3), FF(5), FF(7)]) == FF(3 * 7 + 2 * 5 * 7)

    def test_function_composition(self) -> None:
        c = FunctionComposition(lambda v: v[0] * v[0] * v[1] + v[1], n_inputs=2, degree=3)
        assert c.degree() == 3
        assert c.evaluate([FF(2), FF(3)]) == FF(15)

    @pytest.mark.parametrize("composition", [
        ProductComposition(2),
        LinearComposition([FF(3), FF(4)]),
        RandomLinearCombination([ProductComposition(1), ProductComposition(1)], [FF(5), FF(6)]),
        FunctionComposition(lambda v: v[0] - v[1], n_inputs=2, degree=1),
    ])
    def test_packed_evaluation_matches_scalar(self, composition) -> None:
        inputs = [FF3.Random(8, seed=i) for i in range(2)]
        packed = composition.evaluate(inputs)
        for k in range(8):
            assert packed[k] == composition.evaluate([inputs[0][k], inputs[1][k]])
        assert isinstance(packed, np.ndarray)


class TestShapes:

    def test_wrong_input_count(self) -> None:
        with pytest.raises(ShapeError):
            ProductComposition(2).evaluate([FF(1)])

    def test_empty_product(self) -> None:
        with pytest.raises(ShapeError):
            ProductComposition(0)

    def test_mismatched_coefficients(self) -> None:
        with pytest.raises(ShapeError):
            RandomLinearCombination([ProductComposition(2)], [FF(1), FF(2)])

    def test_input_map_arity(self) -> None:
        with pytest.raises(ShapeError):
            RandomLinearCombination([ProductComposition(2)], [FF(1)], input_map=[[0]])
