"""Wavelet transform systems using PyWavelets.

Produces and consumes coefficient grids in the Mallat layout expected by the
ZTW coder: ``pywt.wavedec2`` with ``levels - 1`` decomposition steps, packed
by ``pywt.coeffs_to_array`` so the lowest-frequency subband sits in the
top-left corner.

Forward mode: Plane -> CoefficientGrid
Inverse mode: ReconCoefficients -> ReconPlane
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

import numpy as np
import pywt

from ztw_ecs.components.coefficients import CoefficientGrid, ReconCoefficients
from ztw_ecs.components.image import Plane, ReconPlane
from ztw_ecs.core.system import System
from ztw_ecs.ztw.geometry import PyramidGeometry

if TYPE_CHECKING:
    from ztw_ecs.core.world import World

# Periodization keeps every subband exactly half the size of its parent
EXTENSION_MODE = "periodization"


def forward_transform(plane: np.ndarray, levels: int, wavelet: str = "haar") -> np.ndarray:
    """Transform a 2D plane into a packed coefficient grid.

    Raises:
        GeometryError: If the plane cannot be split ``levels - 1`` times
    """
    PyramidGeometry.for_grid(plane.shape, levels)
    if levels == 1:
        return plane.astype(np.float64)
    coeffs = pywt.wavedec2(plane, wavelet, mode=EXTENSION_MODE, level=levels - 1)
    packed, _ = pywt.coeffs_to_array(coeffs)
    return np.asarray(packed, dtype=np.float64)


def inverse_transform(packed: np.ndarray, levels: int, wavelet: str = "haar") -> np.ndarray:
    """Inverse of ``forward_transform``."""
    PyramidGeometry.for_grid(packed.shape, levels)
    if levels == 1:
        return packed.astype(np.float64)
    coeff_slices = _coefficient_slices(packed.shape, levels, wavelet)
    coeffs = pywt.array_to_coeffs(packed, coeff_slices, output_format="wavedec2")
    recon = pywt.waverec2(coeffs, wavelet, mode=EXTENSION_MODE)
    return np.asarray(recon, dtype=np.float64)


def _coefficient_slices(
    shape: tuple[int, ...], levels: int, wavelet: str
) -> list[Any]:
    """Slices of each subband in the packed array, for ``array_to_coeffs``."""
    template = pywt.wavedec2(
        np.zeros(shape), wavelet, mode=EXTENSION_MODE, level=levels - 1
    )
    _, coeff_slices = pywt.coeffs_to_array(template)
    return list(coeff_slices)


class WaveletHaar(System):
    """Multi-level 2D wavelet transform feeding the ZTW coder.

    The Haar wavelet is the default; any orthogonal or biorthogonal wavelet
    known to PyWavelets can be selected with ``wavelet``.
    """

    def __init__(
        self,
        levels: int = 4,
        mode: Literal["forward", "inverse"] = "forward",
        wavelet: str = "haar",
    ):
        """Initialize wavelet system.

        Args:
            levels: Resolution levels (1-16); the transform runs levels-1 steps
            mode: 'forward' for decomposition, 'inverse' for reconstruction
            wavelet: PyWavelets wavelet name
        """
        super().__init__(mode=mode)
        if not 1 <= levels <= 16:
            raise ValueError(f"levels must be in [1, 16], got {levels}")
        if wavelet not in pywt.wavelist(kind="discrete"):
            raise ValueError(f"Unknown discrete wavelet {wavelet!r}")
        self.levels = levels
        self.wavelet = wavelet

    def required_components(self) -> list[type]:
        if self.is_forward:
            return [Plane]
        return [ReconCoefficients]

    def produced_components(self) -> list[type]:
        if self.is_forward:
            return [CoefficientGrid]
        return [ReconPlane]

    def run(self, world: World, eids: list[int]) -> None:
        """Execute wavelet transform on entities.

        Args:
            world: World containing entities
            eids: List of entity IDs to process
        """
        if self.is_forward:
            self._run_forward(world, eids)
        else:
            self._run_inverse(world, eids)

    def _run_forward(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            plane = world.get_component(eid, Plane)
            packed = forward_transform(world.arena.view(plane.pix), self.levels, self.wavelet)
            data_ref = world.arena.copy_tensor(packed)
            world.add_component(eid, CoefficientGrid(data=data_ref, levels=self.levels))

    def _run_inverse(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            recon = world.get_component(eid, ReconCoefficients)
            if recon.levels != self.levels:
                raise ValueError(
                    f"Coefficients have {recon.levels} levels, system expects {self.levels}"
                )
            pix = inverse_transform(world.arena.view(recon.data), self.levels, self.wavelet)
            world.add_component(eid, ReconPlane(pix=world.arena.copy_tensor(pix)))
