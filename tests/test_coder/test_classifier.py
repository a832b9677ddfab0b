"""Tests for the zero-tree significance classifier."""

import numpy as np
import pytest

from ztw_ecs.ztw.classifier import PassState, classify, mark_zero_tree
from ztw_ecs.ztw.geometry import PyramidGeometry
from ztw_ecs.ztw.labels import Label
from ztw_ecs.ztw.scan import iter_scan


@pytest.fixture
def geom() -> PyramidGeometry:
    return PyramidGeometry(height=8, width=8, levels=3)


def _classify_pass(coeffs: np.ndarray, state: PassState) -> list[Label]:
    """Emitted labels of one pass, as the encoder produces them."""
    emitted = []
    for i, j in iter_scan(state.geometry):
        if state.labels[i, j] == Label.SKIP:
            continue
        emitted.append(classify(coeffs, state, i, j))
    return emitted


class TestPassState:
    """Tests for the pass-scoped label grid."""

    def test_fresh_grid_is_unknown(self, geom: PyramidGeometry) -> None:
        state = PassState(geom, threshold=1.0)
        assert state.labels.shape == (8, 8)
        assert state.count(Label.UNKNOWN) == 64

    def test_reused_buffer_is_cleared(self, geom: PyramidGeometry) -> None:
        buffer = np.full((8, 8), Label.SKIP, dtype=np.uint8)
        state = PassState(geom, threshold=1.0, labels=buffer)
        assert state.labels is buffer
        assert state.count(Label.UNKNOWN) == 64

    def test_bad_buffer(self, geom: PyramidGeometry) -> None:
        with pytest.raises(ValueError, match="Label buffer"):
            PassState(geom, threshold=1.0, labels=np.zeros((8, 8), dtype=np.int32))

    def test_assign_and_label(self, geom: PyramidGeometry) -> None:
        state = PassState(geom, threshold=1.0)
        state.assign(3, 4, Label.NEGATIVE)
        assert state.label(3, 4) is Label.NEGATIVE
        assert state.count(Label.NEGATIVE) == 1


class TestClassify:
    """Tests for single-cell classification."""

    def test_significant_signs(self, geom: PyramidGeometry) -> None:
        coeffs = np.zeros((8, 8))
        coeffs[0, 0] = 10.0
        coeffs[0, 1] = -10.0
        state = PassState(geom, threshold=5.0)
        assert classify(coeffs, state, 0, 0) is Label.POSITIVE
        assert classify(coeffs, state, 0, 1) is Label.NEGATIVE

    def test_significance_is_strict(self, geom: PyramidGeometry) -> None:
        """A magnitude equal to the threshold is not significant."""
        coeffs = np.zeros((8, 8))
        coeffs[5, 5] = 5.0
        state = PassState(geom, threshold=5.0)
        assert classify(coeffs, state, 5, 5) is Label.ZERO_TREE_ROOT

    def test_isolated_zero(self, geom: PyramidGeometry) -> None:
        """An insignificant parent of a significant grandchild is ZERO_ISOLATED."""
        coeffs = np.zeros((8, 8))
        coeffs[0, 6] = 9.0  # grandchild of (0, 1) via (0, 3)
        state = PassState(geom, threshold=4.0)
        assert classify(coeffs, state, 0, 1) is Label.ZERO_ISOLATED
        assert state.label(0, 3) is Label.ZERO_ISOLATED
        assert state.label(0, 6) is Label.POSITIVE

    def test_zero_tree_marks_descendants(self, geom: PyramidGeometry) -> None:
        coeffs = np.zeros((8, 8))
        state = PassState(geom, threshold=1.0)
        assert classify(coeffs, state, 1, 1) is Label.ZERO_TREE_ROOT
        for i, j in geom.descendants(1, 1):
            assert state.label(i, j) is Label.SKIP

    def test_classification_is_memoized(self, geom: PyramidGeometry) -> None:
        coeffs = np.zeros((8, 8))
        state = PassState(geom, threshold=1.0)
        state.assign(2, 2, Label.POSITIVE)
        assert classify(coeffs, state, 2, 2) is Label.POSITIVE

    def test_sibling_zero_tree_under_isolated_parent(self, geom: PyramidGeometry) -> None:
        """Children without significance stay ZERO_TREE_ROOT under a ZERO_ISOLATED parent."""
        coeffs = np.zeros((8, 8))
        coeffs[2, 2] = 20.0  # child of (0, 0) in D1
        state = PassState(geom, threshold=8.0)
        assert classify(coeffs, state, 0, 0) is Label.ZERO_ISOLATED
        assert state.label(0, 2) is Label.ZERO_TREE_ROOT
        assert state.label(2, 0) is Label.ZERO_TREE_ROOT
        assert state.label(2, 2) is Label.POSITIVE
        assert state.label(4, 4) is Label.UNKNOWN  # below a significant cell


class TestMarkZeroTree:
    """Tests for subtree marking."""

    def test_marks_only_descendants(self, geom: PyramidGeometry) -> None:
        state = PassState(geom, threshold=1.0)
        mark_zero_tree(state, 0, 2)
        assert state.count(Label.SKIP) == 4
        assert state.label(0, 2) is Label.UNKNOWN

    def test_overwrites_classified_children(self, geom: PyramidGeometry) -> None:
        state = PassState(geom, threshold=1.0)
        state.assign(0, 2, Label.ZERO_TREE_ROOT)
        mark_zero_tree(state, 0, 0)
        assert state.label(0, 2) is Label.SKIP
        assert state.count(Label.SKIP) == 15


class TestPassInvariants:
    """Properties of a full classification pass."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_every_cell_labelled_once(self, seed: int) -> None:
        """After a pass every cell holds an emitted label or SKIP."""
        geom = PyramidGeometry(height=16, width=16, levels=4)
        coeffs = np.random.default_rng(seed).laplace(scale=4.0, size=(16, 16))
        state = PassState(geom, threshold=float(np.abs(coeffs).max()) / 4)
        emitted = _classify_pass(coeffs, state)

        assert state.count(Label.UNKNOWN) == 0
        assert len(emitted) + state.count(Label.SKIP) == geom.size

    @pytest.mark.parametrize("seed", [3, 4, 5])
    def test_labels_are_sound(self, seed: int) -> None:
        """Significant labels match the coefficients; zero trees hide nothing."""
        geom = PyramidGeometry(height=16, width=16, levels=4)
        coeffs = np.random.default_rng(seed).laplace(scale=4.0, size=(16, 16))
        threshold = float(np.abs(coeffs).max()) / 8
        state = PassState(geom, threshold=threshold)
        _classify_pass(coeffs, state)

        for i in range(16):
            for j in range(16):
                label = state.label(i, j)
                if label is Label.POSITIVE:
                    assert coeffs[i, j] > threshold
                elif label is Label.NEGATIVE:
                    assert coeffs[i, j] < -threshold
                elif label is Label.ZERO_TREE_ROOT:
                    assert abs(coeffs[i, j]) <= threshold
                    for d in geom.descendants(i, j):
                        assert abs(coeffs[d]) <= threshold
                elif label is Label.ZERO_ISOLATED:
                    assert abs(coeffs[i, j]) <= threshold
                    assert any(abs(coeffs[d]) > threshold for d in geom.descendants(i, j))

    def test_all_zero_grid_emits_base_only(self) -> None:
        """With threshold 0 nothing is significant and every base cell is a root."""
        geom = PyramidGeometry(height=8, width=8, levels=3)
        state = PassState(geom, threshold=0.0)
        emitted = _classify_pass(np.zeros((8, 8)), state)
        assert emitted == [Label.ZERO_TREE_ROOT] * 4
