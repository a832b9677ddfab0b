"""Progressive zero-tree wavelet (ZTW) coding with an ECS architecture.

This package provides an embedded significance-map coder for wavelet
coefficient grids:
- Zero-tree classification of the coefficient pyramid, one pass per threshold
- Dense 2-bit label streams that can be truncated at any pass boundary
- Entity-Component-System (ECS) pipelines for wavelet, coding and metrics
- Zero-copy memory management via Arena allocation

Quick Start:
    >>> from ztw_ecs import compress, decompress
    >>> import numpy as np
    >>>
    >>> grid = np.random.randn(64, 64)
    >>> data = compress(grid, levels=4, target_kbits=8)
    >>> recon = decompress(data)

For more control, use the fluent pipeline API:
    >>> from ztw_ecs import World, CodecConfig
    >>> from ztw_ecs.components.coefficients import ReconCoefficients
    >>> from ztw_ecs.systems.ztw import ZTWEncode, ZTWDecode
    >>>
    >>> world = World()
    >>> entity = world.spawn_coefficients(grid, levels=4)
    >>> config = CodecConfig(levels=4, target_kbits=8)
    >>> recon = (
    ...     world.pipe(entity)
    ...     .to(ZTWEncode(config))
    ...     .to(ZTWDecode(config))
    ...     .out(ReconCoefficients)
    ... )
"""

__version__ = "0.1.0"

from ztw_ecs.api import (
    compress,
    compress_image,
    decompress,
    decompress_image,
    get_compression_info,
    get_compression_ratio,
)
from ztw_ecs.config import CodecConfig, load_config
from ztw_ecs.core.arena import Arena, TensorRef
from ztw_ecs.core.world import World

__all__ = [
    "__version__",
    "compress",
    "decompress",
    "compress_image",
    "decompress_image",
    "get_compression_info",
    "get_compression_ratio",
    "CodecConfig",
    "load_config",
    "World",
    "Arena",
    "TensorRef",
]
