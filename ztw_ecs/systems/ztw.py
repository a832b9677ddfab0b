"""Zero-tree wavelet coding systems.

Wraps the progressive ZTW pass driver for use in ECS pipelines.

Forward: CoefficientGrid -> ZTWBitstream
Inverse: ZTWBitstream -> ReconCoefficients
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Literal

import numpy as np

from ztw_ecs.components.bitstream import ZTWBitstream
from ztw_ecs.components.coefficients import CoefficientGrid, ReconCoefficients
from ztw_ecs.config import CodecConfig
from ztw_ecs.core.system import System
from ztw_ecs.ztw.driver import ztw_decode, ztw_encode

if TYPE_CHECKING:
    from ztw_ecs.core.world import World


class ZTWEncode(System):
    """Encode coefficient grids into progressive ZTW streams.

    The source CoefficientGrid is left untouched: the encoder runs on a
    scratch copy in the arena, which is released together with the per-pass
    label grid once the stream is produced. The coding report is stored in
    ``world.metadata[eid]['encode_report']``.
    """

    def __init__(
        self,
        config: CodecConfig | None = None,
        mode: Literal["encode", "forward"] = "encode",
    ) -> None:
        """Initialize ZTW encoder.

        Args:
            config: Codec parameters (defaults to ``CodecConfig()``)
            mode: Must be 'encode' or 'forward'
        """
        super().__init__(mode=mode)
        if not self.is_forward:
            raise ValueError("ZTWEncode only supports encode mode")
        self.config = config or CodecConfig()

    def required_components(self) -> list[type]:
        return [CoefficientGrid]

    def produced_components(self) -> list[type]:
        return [ZTWBitstream]

    def run(self, world: World, eids: list[int]) -> None:
        """Encode every entity's coefficient grid.

        Args:
            world: World containing entities
            eids: List of entity IDs to process
        """
        for eid in eids:
            grid = world.get_component(eid, CoefficientGrid)
            coeffs = world.arena.view(grid.data)
            height, width = coeffs.shape

            stream = io.BytesIO()
            mark = world.arena.mark()
            try:
                residual = world.arena.view(world.arena.copy_tensor(coeffs))
                labels = world.arena.view(
                    world.arena.alloc_tensor((height, width), np.uint8)
                )
                report = ztw_encode(
                    residual,
                    width,
                    height,
                    grid.levels,
                    self.config.target_kbits,
                    stream,
                    max_passes=self.config.max_passes,
                    fsync=False,
                    label_buffer=labels,
                )
            finally:
                world.arena.release(mark)

            data_ref = world.arena.copy_bytes(stream.getvalue())
            world.add_component(
                eid,
                ZTWBitstream(
                    data=data_ref,
                    height=height,
                    width=width,
                    levels=grid.levels,
                    initial_threshold=report.initial_threshold,
                    passes=report.passes,
                    num_bits=report.bits,
                ),
            )
            world.metadata[eid]["encode_report"] = report


class ZTWDecode(System):
    """Decode ZTW streams into reconstructed coefficient grids.

    Only the number of passes recorded in the ZTWBitstream is applied (or
    fewer, if ``config.max_passes`` is lower), which gives a progressive
    preview of the same stream. The coding report is stored in
    ``world.metadata[eid]['decode_report']``.
    """

    def __init__(
        self,
        config: CodecConfig | None = None,
        mode: Literal["decode", "inverse"] = "decode",
    ) -> None:
        """Initialize ZTW decoder.

        Args:
            config: Codec parameters (defaults to ``CodecConfig()``)
            mode: Must be 'decode' or 'inverse'
        """
        super().__init__(mode=mode)
        if self.is_forward:
            raise ValueError("ZTWDecode only supports decode mode")
        self.config = config or CodecConfig()

    def required_components(self) -> list[type]:
        return [ZTWBitstream]

    def produced_components(self) -> list[type]:
        return [ReconCoefficients]

    def run(self, world: World, eids: list[int]) -> None:
        """Decode every entity's bitstream.

        Args:
            world: World containing entities
            eids: List of entity IDs to process
        """
        for eid in eids:
            bitstream = world.get_component(eid, ZTWBitstream)
            data = world.arena.view(bitstream.data).tobytes()

            max_passes = bitstream.passes or None
            if self.config.max_passes is not None:
                max_passes = min(max_passes or self.config.max_passes, self.config.max_passes)

            recon_ref = world.arena.alloc_tensor(
                (bitstream.height, bitstream.width), np.float64
            )
            mark = world.arena.mark()
            try:
                labels = world.arena.view(
                    world.arena.alloc_tensor((bitstream.height, bitstream.width), np.uint8)
                )
                report = ztw_decode(
                    world.arena.view(recon_ref),
                    bitstream.width,
                    bitstream.height,
                    bitstream.levels,
                    io.BytesIO(data),
                    max_passes=max_passes,
                    label_buffer=labels,
                )
            finally:
                world.arena.release(mark)

            world.add_component(
                eid,
                ReconCoefficients(
                    data=recon_ref, levels=bitstream.levels, passes=report.passes
                ),
            )
            world.metadata[eid]["decode_report"] = report
