"""Codec configuration loaded from ``ztw_ecs.toml``.

Example file:

    [codec]
    levels = 4
    target_kbits = 64.0
    max_passes = 24
    wavelet = "haar"

Resolution order: the ``ZTW_CONFIG`` environment variable, then the explicit
path, then ``./ztw_ecs.toml`` and ``~/ztw_ecs.toml``. Without any file the
defaults below are used.
"""

from __future__ import annotations

import os
from typing import Any, Optional, cast

from pydantic import BaseModel, Field

# TOML loading for Python 3.11+ and older
try:
    import tomllib  # type: ignore[import-not-found, unused-ignore]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef, unused-ignore]

CONFIG_ENV = "ZTW_CONFIG"
CONFIG_FILENAME = "ztw_ecs.toml"


class CodecConfig(BaseModel):
    """Parameters of a ZTW encode/decode run.

    Attributes:
        levels: Resolution levels of the wavelet pyramid
        target_kbits: Encoder stops once the stream reaches this many kilobits
        max_passes: Optional cap on the number of passes
        wavelet: PyWavelets name of the transform used by image helpers
    """

    model_config = {"frozen": True, "extra": "forbid"}

    levels: int = Field(default=4, ge=1, le=16)
    target_kbits: float = Field(default=64.0, gt=0.0)
    max_passes: Optional[int] = Field(default=None, ge=1)
    wavelet: str = Field(default="haar")


def _resolve_config_path(config_path: str | None) -> str | None:
    """Resolve configuration path from env, explicit path, or defaults.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
    """
    explicit = os.environ.get(CONFIG_ENV) or config_path
    if explicit:
        if not os.path.exists(explicit):
            raise FileNotFoundError(f"Config file not found at {explicit}")
        return explicit
    candidates = [
        CONFIG_FILENAME,
        os.path.expanduser(f"~/{CONFIG_FILENAME}"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def load_config(config_path: str | None = None, **overrides: Any) -> CodecConfig:
    """Load the ``[codec]`` table and apply keyword overrides.

    Overrides whose value is None are ignored, so CLI arguments can be passed
    straight through.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
        pydantic.ValidationError: If a value is out of range
    """
    values: dict[str, Any] = {}
    resolved = _resolve_config_path(config_path)
    if resolved is not None:
        with open(resolved, "rb") as f:
            config = cast(dict[str, Any], tomllib.load(f))
        values.update(cast(dict[str, Any], config.get("codec", {})))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return CodecConfig(**values)
