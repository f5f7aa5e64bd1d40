"""PcsConfig validation, query policies and JSON loading."""

import dataclasses
import json

import pytest

from sumfri.primitives.hashing import Blake2bHasher, Sha256Hasher
from sumfri.protocol.config import QUERY_POLICIES, PcsConfig, register_query_policy


class TestDefaults:

    def test_values(self) -> None:
        config = PcsConfig()
        assert config.log_blowup == 2
        assert config.blowup == 4
        assert config.log_final_degree == 0
        assert config.merkle_arity == 2
        assert isinstance(config.hasher(), Blake2bHasher)

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            PcsConfig().log_blowup = 3


class TestQueryCount:

    @pytest.mark.parametrize("policy,expected", [
        ("conjectured", 50),
        ("johnson", 100),
        ("unique_decoding", 148),
    ])
    def test_policies(self, policy: str, expected: int) -> None:
        assert PcsConfig(query_policy=policy).num_queries() == expected

    def test_grinding_reduces_queries(self) -> None:
        assert PcsConfig(pow_bits=20).num_queries() == 40

    def test_extra_bits(self) -> None:
        assert PcsConfig().num_queries(extra_bits=3) == 52

    def test_explicit_override(self) -> None:
        config = PcsConfig(n_queries=7, query_policy="unique_decoding")
        assert config.num_queries() == 7
        assert config.num_queries(extra_bits=10) == 7

    def test_registered_policy(self) -> None:
        register_query_policy("one_bit", lambda log_blowup: 1.0)
        try:
            assert PcsConfig(security_bits=30, query_policy="one_bit").num_queries() == 30
        finally:
            del QUERY_POLICIES["one_bit"]

    def test_policy_without_soundness(self) -> None:
        register_query_policy("useless", lambda log_blowup: 0.0)
        try:
            with pytest.raises(ValueError):
                PcsConfig(query_policy="useless").num_queries()
        finally:
            del QUERY_POLICIES["useless"]


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"log_blowup": 0},
        {"log_final_degree": -1},
        {"n_queries": 0},
        {"security_bits": 0},
        {"query_policy": "optimistic"},
        {"pow_bits": -1},
        {"pow_bits": 33},
        {"merkle_arity": 1},
        {"hash_name": "md5"},
    ])
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ValueError):
            PcsConfig(**kwargs)


class TestSerialization:

    def test_from_dict_camel_case(self) -> None:
        config = PcsConfig.from_dict({
            "logBlowup": 3,
            "logFinalDegree": 2,
            "nQueries": 12,
            "merkleTreeArity": 4,
            "hashName": "sha256",
            "powBits": 8,
        })
        assert config.log_blowup == 3
        assert config.log_final_degree == 2
        assert config.n_queries == 12
        assert config.merkle_arity == 4
        assert config.pow_bits == 8
        assert isinstance(config.hasher(), Sha256Hasher)

    def test_from_dict_snake_case(self) -> None:
        assert PcsConfig.from_dict({"security_bits": 64}).security_bits == 64

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError):
            PcsConfig.from_dict({"logBlowUp": 2})

    def test_dict_round_trip(self) -> None:
        config = PcsConfig(log_blowup=3, query_policy="johnson", transcript_label="app")
        assert PcsConfig.from_dict(config.to_dict()) == config

    def test_from_json(self, tmp_path) -> None:
        path = tmp_path / "pcs.json"
        path.write_text(json.dumps({"logBlowup": 1, "securityBits": 80, "queryPolicy": "johnson"}))
        config = PcsConfig.from_json(str(path))
        assert config.num_queries() == 160
