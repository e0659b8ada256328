from __future__ import annotations

from pathlib import Path

import pytest

from pairswap.config import PoolConfig, load_pool_config, pool_config_from_mapping


def test_defaults_are_the_standard_pool() -> None:
    config = PoolConfig()
    assert config.fee_bps == 30
    assert config.minimum_shares == 1000
    assert config.protocol_fee_to is None
    assert not config.protocol_fee_on


def test_load_pool_config_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "pool.yaml"
    path.write_text("fee_bps: 5\nminimum_shares: 10\nprotocol_fee_to: treasury\n", encoding="utf-8")
    config = load_pool_config(path)
    assert config == PoolConfig(fee_bps=5, minimum_shares=10, protocol_fee_to="treasury")
    assert config.protocol_fee_on


def test_load_pool_config_empty_file_yields_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_pool_config(path) == PoolConfig()


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="unknown pool config keys: fee"):
        pool_config_from_mapping({"fee": 30})


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 30\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_pool_config(path)


@pytest.mark.parametrize(
    "kwargs, exc",
    [
        ({"fee_bps": -1}, ValueError),
        ({"fee_bps": 10_000}, ValueError),
        ({"fee_bps": True}, TypeError),
        ({"minimum_shares": 0}, ValueError),
        ({"protocol_fee_to": ""}, ValueError),
    ],
)
def test_invalid_values_are_rejected(kwargs: dict, exc: type) -> None:
    with pytest.raises(exc):
        PoolConfig(**kwargs)
