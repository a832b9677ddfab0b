"""Tests for the fluent Pipe API."""

import numpy as np
import pytest

from ztw_ecs.components.bitstream import ZTWBitstream
from ztw_ecs.components.coefficients import CoefficientGrid, ReconCoefficients
from ztw_ecs.config import CodecConfig
from ztw_ecs.core.pipeline import Pipe
from ztw_ecs.core.world import World
from ztw_ecs.systems.ztw import ZTWDecode, ZTWEncode


@pytest.fixture
def world() -> World:
    return World(arena_bytes=1 << 20)


@pytest.fixture
def config() -> CodecConfig:
    return CodecConfig(levels=3, target_kbits=1.0)


@pytest.fixture
def grid() -> np.ndarray:
    rng = np.random.default_rng(3)
    return rng.normal(scale=20.0, size=(16, 16))


class TestPipe:
    """Tests for Pipe chaining and execution."""

    def test_world_pipe(self, world: World) -> None:
        eid = world.new_entity()
        pipe = world.pipe(eid)
        assert isinstance(pipe, Pipe)
        assert pipe.entities == [eid]
        assert pipe.systems == []

    def test_to_chains(self, world: World, config: CodecConfig) -> None:
        eid = world.new_entity()
        encode = ZTWEncode(config)
        decode = ZTWDecode(config)
        pipe = world.pipe(eid).to(encode).to(decode)
        assert pipe.systems == [encode, decode]

    def test_out_runs_systems(
        self, world: World, config: CodecConfig, grid: np.ndarray
    ) -> None:
        eid = world.spawn_coefficients(grid, levels=3)
        bitstream = world.pipe(eid).to(ZTWEncode(config)).out(ZTWBitstream)
        assert bitstream.passes >= 1
        assert world.has_component(eid, ZTWBitstream)

    def test_pipe_operator(
        self, world: World, config: CodecConfig, grid: np.ndarray
    ) -> None:
        """Test | gives the same result as .to()."""
        eid1 = world.spawn_coefficients(grid, levels=3)
        eid2 = world.spawn_coefficients(grid, levels=3)

        via_to = world.pipe(eid1).to(ZTWEncode(config)).to(ZTWDecode(config)).out(
            ReconCoefficients
        )
        via_or = (world.pipe(eid2) | ZTWEncode(config) | ZTWDecode(config)).out(
            ReconCoefficients
        )
        np.testing.assert_array_equal(
            world.arena.view(via_to.data), world.arena.view(via_or.data)
        )

    def test_missing_components_raises(self, world: World, config: CodecConfig) -> None:
        eid = world.new_entity()
        with pytest.raises(RuntimeError, match="ZTWEncode cannot run"):
            world.pipe(eid).to(ZTWEncode(config)).execute()

    def test_out_missing_component(
        self, world: World, config: CodecConfig, grid: np.ndarray
    ) -> None:
        eid = world.spawn_coefficients(grid, levels=3)
        with pytest.raises(KeyError):
            world.pipe(eid).to(ZTWEncode(config)).out(ReconCoefficients)

    def test_source_untouched(
        self, world: World, config: CodecConfig, grid: np.ndarray
    ) -> None:
        """Test encoding leaves the CoefficientGrid unmodified."""
        eid = world.spawn_coefficients(grid, levels=3)
        world.pipe(eid).to(ZTWEncode(config)).execute()
        source = world.get_component(eid, CoefficientGrid)
        np.testing.assert_array_equal(world.arena.view(source.data), grid)
