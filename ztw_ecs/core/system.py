"""System base class for ECS transformations.

Systems read required components from entities and attach the components
they produce. The coding systems run in one of two directions:

- 'encode' or 'forward': coefficients toward the bitstream
- 'decode' or 'inverse': bitstream back toward coefficients

Example:
    >>> class Negate(System):
    ...     def required_components(self):
    ...         return [CoefficientGrid]
    ...     def produced_components(self):
    ...         return [ReconCoefficients]
    ...     def run(self, world, eids):
    ...         for eid in eids:
    ...             grid = world.get_component(eid, CoefficientGrid)
    ...             ref = world.arena.copy_tensor(-world.arena.view(grid.data))
    ...             world.add_component(eid, ReconCoefficients(data=ref, levels=grid.levels))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from ztw_ecs.core.world import World

Mode = Literal["encode", "decode", "forward", "inverse"]


class System(ABC):
    """Base class for all ECS systems.

    Attributes:
        mode: Transformation direction ('encode'/'forward'/'decode'/'inverse')
    """

    def __init__(self, mode: Mode = "encode") -> None:
        """Initialize system with transformation mode.

        Args:
            mode: Direction of transformation
        """
        if mode not in ("encode", "decode", "forward", "inverse"):
            raise ValueError(f"Unknown mode {mode!r}")
        self.mode = mode

    @property
    def is_forward(self) -> bool:
        """True for the 'encode' and 'forward' directions."""
        return self.mode in ("encode", "forward")

    @abstractmethod
    def required_components(self) -> list[type]:
        """Return list of component types this system requires as input."""

    @abstractmethod
    def produced_components(self) -> list[type]:
        """Return list of component types this system produces as output."""

    @abstractmethod
    def run(self, world: World, eids: list[int]) -> None:
        """Execute system on given entities.

        Args:
            world: World instance with entities and components
            eids: List of entity IDs to process
        """

    def can_run(self, world: World, eid: int) -> bool:
        """Check if entity has all required components."""
        return all(world.has_component(eid, ct) for ct in self.required_components())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(mode={self.mode})"
