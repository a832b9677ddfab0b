"""Reconstruction quality metrics.

Computes MSE and PSNR between a source component and its reconstruction
using scikit-image. Results are stored in World metadata rather than as
components.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
from skimage.metrics import mean_squared_error, peak_signal_noise_ratio

from ztw_ecs.components.coefficients import CoefficientGrid, ReconCoefficients
from ztw_ecs.core.system import System

if TYPE_CHECKING:
    from ztw_ecs.core.world import World


def _tensor(world: World, component: Any) -> np.ndarray:
    """View the tensor of a coefficient (``data``) or image (``pix``) component."""
    ref = getattr(component, "data", None)
    if ref is None:
        ref = getattr(component, "pix", None)
    if ref is None:
        raise TypeError(f"{type(component).__name__} has no tensor field")
    return world.arena.view(ref)


class _PairMetric(System):
    """Shared plumbing for metrics over a (source, reconstruction) pair."""

    key = ""

    def __init__(
        self,
        src_component: type = CoefficientGrid,
        recon_component: type = ReconCoefficients,
    ):
        super().__init__(mode="forward")
        self.src_component = src_component
        self.recon_component = recon_component

    def required_components(self) -> list[type]:
        return [self.src_component, self.recon_component]

    def produced_components(self) -> list[type]:
        """Metrics produce no components; results go to metadata."""
        return []

    def run(self, world: World, eids: list[int]) -> None:
        for eid in eids:
            src_data = _tensor(world, world.get_component(eid, self.src_component))
            recon_data = _tensor(world, world.get_component(eid, self.recon_component))

            if src_data.shape != recon_data.shape:
                raise ValueError(
                    f"Shape mismatch: src {src_data.shape} vs recon {recon_data.shape}"
                )

            world.metadata.setdefault(eid, {})[self.key] = float(
                self.compute(src_data, recon_data)
            )

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        raise NotImplementedError


class MetricMSE(_PairMetric):
    """Mean squared error, stored in ``world.metadata[eid]['mse']``."""

    key = "mse"

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        return float(mean_squared_error(src, recon))


class MetricPSNR(_PairMetric):
    """Peak signal-to-noise ratio in dB, stored in ``world.metadata[eid]['psnr']``.

    Coefficient grids have no natural intensity range, so by default the
    peak-to-peak range of the source is used. Perfect reconstruction gives
    ``inf``.
    """

    key = "psnr"

    def __init__(
        self,
        src_component: type = CoefficientGrid,
        recon_component: type = ReconCoefficients,
        data_range: float | None = None,
    ):
        """Initialize PSNR metric system.

        Args:
            src_component: Source component type
            recon_component: Reconstruction component type
            data_range: Signal range (source peak-to-peak if None)
        """
        super().__init__(src_component, recon_component)
        self.data_range = data_range

    def compute(self, src: np.ndarray, recon: np.ndarray) -> float:
        if np.array_equal(src, recon):
            return float("inf")
        data_range = self.data_range
        if data_range is None:
            data_range = float(np.ptp(src)) or 1.0
        return float(peak_signal_noise_ratio(src, recon, data_range=data_range))
