"""Fluent pipeline for chaining systems on an entity."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from ztw_ecs.core.system import System
    from ztw_ecs.core.world import World

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class Pipe:
    """Fluent pipeline builder.

    Chain systems with ``.to()`` or ``|`` and run them with ``.out()``.

    Example:
        >>> recon = (
        ...     world.pipe(entity)
        ...     | ZTWEncode(config)
        ...     | ZTWDecode(config)
        ... ).out(ReconCoefficients)
    """

    def __init__(self, world: "World", entity: int) -> None:
        self.world: Any = world
        self.entities = [entity]
        self.systems: list[Any] = []

    def to(self, system: "System") -> "Pipe":
        """Append a system and return self for chaining."""
        self.systems.append(system)
        return self

    def __or__(self, system: "System") -> "Pipe":
        return self.to(system)

    def out(self, component_type: type[T]) -> T:
        """Run the pipeline and return the requested component.

        Raises:
            RuntimeError: If any system cannot run (missing components)
            KeyError: If the entity lacks the component after execution
        """
        self.execute()
        return self.world.get_component(self.entities[0], component_type)  # type: ignore[no-any-return]

    def execute(self) -> None:
        """Run all systems in order.

        Raises:
            RuntimeError: If a system has no entity it can run on
        """
        for system in self.systems:
            runnable = [
                eid for eid in self.entities if system.can_run(self.world, eid)
            ]

            if not runnable:
                required = [ct.__name__ for ct in system.required_components()]
                raise RuntimeError(
                    f"System {type(system).__name__} cannot run: "
                    f"entities missing required components {required}. "
                    f"Available entities: {self.entities}"
                )

            logger.debug("Running %r on entities %s", system, runnable)
            system.run(self.world, runnable)
