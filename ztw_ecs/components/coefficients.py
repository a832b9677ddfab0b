"""Wavelet coefficient components."""

from pydantic import BaseModel, Field

from ztw_ecs.core.arena import TensorRef


class Component(BaseModel):
    """Base class for all ECS components."""

    model_config = {"arbitrary_types_allowed": True}


class CoefficientGrid(Component):
    """Wavelet coefficients in Mallat layout, ready for ZTW coding.

    Attributes:
        data: TensorRef to coefficients (H, W) float64
        levels: Resolution levels (lowest band is H / 2**(levels-1) rows)
    """

    data: TensorRef
    levels: int = Field(ge=1, le=16)


class ReconCoefficients(Component):
    """Coefficients reconstructed from a ZTW bitstream.

    Attributes:
        data: TensorRef to reconstructed coefficients (H, W) float64
        levels: Resolution levels of the pyramid
        passes: Number of complete passes that were decoded
    """

    data: TensorRef
    levels: int = Field(ge=1, le=16)
    passes: int = Field(ge=0)
