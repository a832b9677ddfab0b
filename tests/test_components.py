"""Tests for ECS component models."""

import numpy as np
import pytest
from pydantic import ValidationError

from ztw_ecs.components.bitstream import ZTWBitstream
from ztw_ecs.components.coefficients import CoefficientGrid, ReconCoefficients
from ztw_ecs.components.image import Plane, ReconPlane
from ztw_ecs.core.arena import Arena, TensorRef


@pytest.fixture
def ref() -> TensorRef:
    return Arena(size_bytes=1 << 12).alloc_tensor((8, 8), np.float64)


class TestImageComponents:
    """Tests for Plane and ReconPlane."""

    def test_plane(self, ref: TensorRef) -> None:
        assert Plane(pix=ref).pix is ref

    def test_recon_plane(self, ref: TensorRef) -> None:
        assert ReconPlane(pix=ref).pix is ref

    def test_plane_requires_tensor_ref(self) -> None:
        with pytest.raises(ValidationError):
            Plane(pix=np.zeros((4, 4)))  # type: ignore[arg-type]


class TestCoefficientComponents:
    """Tests for coefficient grid components."""

    def test_coefficient_grid(self, ref: TensorRef) -> None:
        grid = CoefficientGrid(data=ref, levels=3)
        assert grid.levels == 3

    @pytest.mark.parametrize("levels", [0, 17])
    def test_levels_range(self, ref: TensorRef, levels: int) -> None:
        with pytest.raises(ValidationError):
            CoefficientGrid(data=ref, levels=levels)

    def test_recon_coefficients(self, ref: TensorRef) -> None:
        recon = ReconCoefficients(data=ref, levels=3, passes=5)
        assert recon.passes == 5

    def test_recon_negative_passes(self, ref: TensorRef) -> None:
        with pytest.raises(ValidationError):
            ReconCoefficients(data=ref, levels=3, passes=-1)


class TestZTWBitstream:
    """Tests for the encoded stream component."""

    def _make(self, ref: TensorRef, **overrides: object) -> ZTWBitstream:
        fields = dict(
            data=ref,
            height=8,
            width=8,
            levels=3,
            initial_threshold=50.0,
            passes=3,
            num_bits=106,
        )
        fields.update(overrides)
        return ZTWBitstream(**fields)  # type: ignore[arg-type]

    def test_valid(self, ref: TensorRef) -> None:
        bitstream = self._make(ref)
        assert bitstream.passes == 3
        assert bitstream.num_bits == 106

    @pytest.mark.parametrize(
        "field,value",
        [
            ("height", 0),
            ("width", -1),
            ("levels", 0),
            ("initial_threshold", -1.0),
            ("passes", -1),
            ("num_bits", -8),
        ],
    )
    def test_invalid_fields(self, ref: TensorRef, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            self._make(ref, **{field: value})
