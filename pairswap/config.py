"""
Pool configuration.

A pool is parameterised by its trading fee, the number of permanently locked
shares minted on the first deposit, and an optional protocol fee recipient.
Configs can be built directly or loaded from a YAML mapping, e.g.::

    fee_bps: 30
    minimum_shares: 1000
    protocol_fee_to: treasury
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .kernels.python.cpmm_quote import BPS_DENOM, DEFAULT_FEE_BPS


DEFAULT_MINIMUM_SHARES = 1000


@dataclass(frozen=True)
class PoolConfig:
    """Runtime config for a single pool."""

    fee_bps: int = DEFAULT_FEE_BPS
    minimum_shares: int = DEFAULT_MINIMUM_SHARES
    protocol_fee_to: Optional[str] = None

    def __post_init__(self) -> None:
        for name, v in (("fee_bps", self.fee_bps), ("minimum_shares", self.minimum_shares)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")
        if self.minimum_shares <= 0:
            raise ValueError(f"minimum_shares must be positive: {self.minimum_shares}")
        if self.protocol_fee_to is not None and (
            not isinstance(self.protocol_fee_to, str) or not self.protocol_fee_to
        ):
            raise ValueError("protocol_fee_to must be a non-empty string or None")

    @property
    def protocol_fee_on(self) -> bool:
        return self.protocol_fee_to is not None


def pool_config_from_mapping(obj: Mapping[str, Any]) -> PoolConfig:
    """Build a PoolConfig from a mapping, rejecting unknown keys."""
    if not isinstance(obj, Mapping):
        raise TypeError("pool config must be a mapping")
    known = {f.name for f in fields(PoolConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown pool config keys: {', '.join(map(str, unknown))}")
    return PoolConfig(**dict(obj))


def load_pool_config(path: Union[str, Path]) -> PoolConfig:
    """Load a PoolConfig from a YAML file. An empty file yields the defaults."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return PoolConfig()
    return pool_config_from_mapping(obj)
