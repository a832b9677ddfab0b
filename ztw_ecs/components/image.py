"""Spatial-domain image components: Plane, ReconPlane."""

from pydantic import BaseModel

from ztw_ecs.core.arena import TensorRef


class Component(BaseModel):
    """Base class for all ECS components.

    Components are data containers using Pydantic for validation and type safety.
    All tensor data is stored as TensorRef handles pointing into the arena.
    """

    model_config = {"arbitrary_types_allowed": True}


class Plane(Component):
    """Single-channel image plane before the wavelet transform.

    Attributes:
        pix: TensorRef to pixel data (H, W) float64
    """

    pix: TensorRef


class ReconPlane(Component):
    """Image plane reconstructed by the inverse wavelet transform.

    Attributes:
        pix: TensorRef to pixel data (H, W) float64
    """

    pix: TensorRef
