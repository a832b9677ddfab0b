"""World: Entity-Component-System manager.

The World is the central ECS registry that manages:
- Entity creation (integer IDs)
- Component storage (type -> entity -> component mapping)
- Component queries (find entities with specific component combinations)
- Arena memory management

Example:
    >>> world = World()
    >>> eid = world.spawn_coefficients(coeffs, levels=4)
    >>> world.query(CoefficientGrid)  # [eid]
    >>> world.clear()  # Reset for next batch
"""

from __future__ import annotations

from typing import Any, TypeVar

import numpy as np
from pydantic import BaseModel

from ztw_ecs.core.arena import Arena
from ztw_ecs.ztw.geometry import PyramidGeometry

Component = BaseModel

T = TypeVar("T", bound=Component)


class World:
    """Central ECS registry managing entities, components, and memory.

    Attributes:
        arena: Memory arena for coefficient, label and stream tensors
        metadata: Per-entity metadata dict (metrics, coding reports)

    Example:
        >>> world = World(arena_bytes=64 << 20)
        >>> eid = world.spawn_plane(np.zeros((256, 256)))
        >>> world.has_component(eid, Plane)
        True
    """

    def __init__(self, arena_bytes: int = 128 << 20):
        """Create World with specified arena size.

        Args:
            arena_bytes: Arena size in bytes (default 128 MB)
        """
        self.arena = Arena(size_bytes=arena_bytes)
        self._next_eid = 0
        self._components: dict[type[Component], dict[int, Component]] = {}
        self.metadata: dict[int, dict[str, Any]] = {}

    def new_entity(self) -> int:
        """Create a new entity and return its ID."""
        eid = self._next_eid
        self._next_eid += 1
        self.metadata[eid] = {}
        return eid

    def spawn_coefficients(self, coefficients: np.ndarray, levels: int) -> int:
        """Ingest a wavelet coefficient grid.

        The grid is copied into the arena as float64, so later coding never
        touches the caller's array.

        Args:
            coefficients: (H, W) real-valued coefficients in Mallat layout
            levels: Resolution levels used by the transform

        Returns:
            Entity ID with CoefficientGrid component attached

        Raises:
            TypeError: If coefficients is not a real-valued ndarray
            GeometryError: If the grid and levels do not form a valid pyramid
        """
        from ztw_ecs.components.coefficients import CoefficientGrid

        if not isinstance(coefficients, np.ndarray):
            raise TypeError(f"Expected ndarray, got {type(coefficients)}")
        if not (
            np.issubdtype(coefficients.dtype, np.floating)
            or np.issubdtype(coefficients.dtype, np.integer)
        ):
            raise TypeError(
                f"Expected real-valued coefficients, got {coefficients.dtype}"
            )
        PyramidGeometry.for_grid(coefficients.shape, levels)

        eid = self.new_entity()
        data_ref = self.arena.copy_tensor(coefficients.astype(np.float64))
        self.add_component(eid, CoefficientGrid(data=data_ref, levels=levels))

        self.metadata[eid]["grid_shape"] = tuple(coefficients.shape)
        self.metadata[eid]["grid_dtype"] = str(coefficients.dtype)
        return eid

    def spawn_plane(self, plane: np.ndarray) -> int:
        """Ingest a single-channel spatial-domain image plane.

        Args:
            plane: (H, W) uint8 or floating point image

        Returns:
            Entity ID with Plane component attached

        Raises:
            ValueError: If the plane is not 2D or has an unsupported dtype
        """
        from ztw_ecs.components.image import Plane

        if plane.ndim != 2:
            raise ValueError(f"Expected plane with shape (H, W), got {plane.shape}")
        if plane.dtype != np.uint8 and not np.issubdtype(plane.dtype, np.floating):
            raise ValueError(f"Expected dtype uint8 or float, got {plane.dtype}")

        eid = self.new_entity()
        pix_ref = self.arena.copy_tensor(plane.astype(np.float64))
        self.add_component(eid, Plane(pix=pix_ref))

        self.metadata[eid]["image_shape"] = tuple(plane.shape)
        self.metadata[eid]["image_dtype"] = str(plane.dtype)
        return eid

    def clear(self) -> None:
        """Reset arena and clear all entities/components for reuse.

        After clear(), all TensorRefs from previous entities are invalidated.
        """
        self.arena.reset()
        self._next_eid = 0
        self._components.clear()
        self.metadata.clear()

    def add_component(self, eid: int, component: Component) -> None:
        """Attach a component to an entity, replacing one of the same type.

        Raises:
            ValueError: If entity does not exist
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        self._components.setdefault(type(component), {})[eid] = component

    def get_component(self, eid: int, comp_type: type[T]) -> T:
        """Retrieve a component from an entity.

        Raises:
            KeyError: If entity does not have the component
        """
        if comp_type not in self._components:
            raise KeyError(f"No entities have component type {comp_type.__name__}")
        if eid not in self._components[comp_type]:
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

        return self._components[comp_type][eid]  # type: ignore

    def has_component(self, eid: int, comp_type: type[Component]) -> bool:
        return (
            comp_type in self._components
            and eid in self._components[comp_type]
        )

    def remove_component(self, eid: int, comp_type: type[Component]) -> None:
        """Remove a component from an entity.

        Raises:
            KeyError: If entity does not have the component
        """
        if not self.has_component(eid, comp_type):
            raise KeyError(f"Entity {eid} does not have component {comp_type.__name__}")

        del self._components[comp_type][eid]

    def query(self, *comp_types: type[Component]) -> list[int]:
        """Query entities that have ALL specified component types.

        Example:
            >>> eids = world.query(CoefficientGrid, ZTWBitstream)
        """
        if not comp_types:
            return list(self.metadata.keys())

        result_set = set(self._components.get(comp_types[0], {}).keys())
        for comp_type in comp_types[1:]:
            if comp_type not in self._components:
                return []
            result_set &= set(self._components[comp_type].keys())

        return sorted(result_set)

    def destroy_entity(self, eid: int) -> None:
        """Remove entity and all its components.

        Arena memory is not reclaimed until the next clear().
        """
        if eid not in self.metadata:
            raise ValueError(f"Entity {eid} does not exist")

        for comp_store in self._components.values():
            comp_store.pop(eid, None)
        del self.metadata[eid]

    def pipe(self, entity: int) -> Any:
        """Start a fluent pipeline for the given entity.

        Example:
            >>> bitstream = (
            ...     world.pipe(entity)
            ...     .to(ZTWEncode(CodecConfig(levels=4, target_kbits=64)))
            ...     .out(ZTWBitstream)
            ... )
        """
        from ztw_ecs.core.pipeline import Pipe

        return Pipe(world=self, entity=entity)

    def __repr__(self) -> str:
        num_entities = len(self.metadata)
        num_comp_types = len(self._components)
        return (
            f"World(entities={num_entities}, component_types={num_comp_types}, "
            f"arena={self.arena})"
        )
