"""Tests for bd_common.id_generator."""

import pytest

from src.bd_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_ids_are_unique(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = [gen.next_id() for _ in range(5000)]
        assert len(set(ids)) == 5000

    def test_ids_are_increasing(self) -> None:
        gen = SnowflakeIdGenerator()
        ids = [gen.next_id() for _ in range(100)]
        assert ids == sorted(ids)

    def test_invalid_machine_id(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)


class TestGenerateId:
    def test_prefix(self) -> None:
        assert generate_id("pay").startswith("pay_")

    def test_no_prefix_is_numeric(self) -> None:
        assert generate_id().isdigit()
