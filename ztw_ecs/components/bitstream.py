"""Encoded ZTW stream component."""

from pydantic import BaseModel, Field

from ztw_ecs.core.arena import TensorRef


class Component(BaseModel):
    """Base class for all ECS components."""

    model_config = {"arbitrary_types_allowed": True}


class ZTWBitstream(Component):
    """Progressive ZTW stream ready for serialization.

    Attributes:
        data: TensorRef to the raw stream bytes (uint8), threshold header included
        height: Rows of the coded grid
        width: Columns of the coded grid
        levels: Resolution levels of the pyramid
        initial_threshold: Threshold of the first pass
        passes: Number of complete passes in the stream
        num_bits: Meaningful bits in the stream (excludes final padding)
    """

    data: TensorRef
    height: int = Field(ge=1)
    width: int = Field(ge=1)
    levels: int = Field(ge=1, le=16)
    initial_threshold: float = Field(ge=0.0)
    passes: int = Field(ge=0)
    num_bits: int = Field(ge=0)
