"""Tests for the FNV-1a hash, canonical seeding and xorshift32 generator."""
from __future__ import annotations

import pytest

from arkgrid.models import RefinementState
from arkgrid.processing import EFF, Hold, StatDelta
from arkgrid.rng import XorShift32, canonical_json, hash32, make_deterministic_seed


class TestHash32:
    def test_empty_string_is_offset_basis(self):
        assert hash32("") == 2166136261

    def test_known_ascii_value(self):
        assert hash32("a") == 0xE40C292C

    def test_hashes_utf16_code_units(self):
        expected = ((2166136261 ^ ord("가")) * 16777619) & 0xFFFFFFFF
        assert hash32("가") == expected

    def test_fits_in_32_bits(self):
        assert 0 <= hash32("질서-안정|attack|BOTH" * 50) < 2 ** 32


class TestSeeding:
    def test_key_order_does_not_matter(self):
        assert make_deterministic_seed({"a": 1, "b": [1, 2]}) == make_deterministic_seed({"b": [1, 2], "a": 1})

    def test_different_salt_different_seed(self):
        assert make_deterministic_seed({"x": 1, "salt": "EVAL"}) != make_deterministic_seed({"x": 1, "salt": "REROLL_EV"})

    def test_actions_serialise_as_keys(self):
        assert canonical_json([StatDelta(EFF, 1), Hold()]) == '["eff_+1","hold"]'

    def test_dataclasses_serialise_as_dicts(self):
        state = RefinementState(eff=1, pts=2, a_name="공격력", a_lvl=3, b_name="낙인력", b_lvl=4)
        text = canonical_json({"s": state})
        assert '"a_name":"공격력"' in text
        assert text.startswith('{"s":{')

    def test_seed_never_zero(self):
        assert make_deterministic_seed({}) != 0


class TestXorShift32:
    def test_first_output_from_seed_one(self):
        assert XorShift32(1).next_u32() == 270369

    def test_zero_seed_maps_to_one(self):
        assert XorShift32(0).state == 1
        assert XorShift32(2 ** 32).state == 1

    def test_reproducible_sequence(self):
        a = XorShift32(12345)
        b = XorShift32(12345)
        assert [a.random() for _ in range(100)] == [b.random() for _ in range(100)]

    def test_random_in_unit_interval(self):
        rng = XorShift32(99)
        values = [rng.random() for _ in range(2000)]
        assert all(0.0 <= v < 1.0 for v in values)
        assert 0.4 < sum(values) / len(values) < 0.6

    def test_choice_and_randrange(self):
        rng = XorShift32(5)
        seq = ["a", "b", "c"]
        assert all(rng.choice(seq) in seq for _ in range(50))
        assert all(0 <= rng.randrange(4) < 4 for _ in range(50))

    def test_empty_inputs_raise(self):
        rng = XorShift32(5)
        with pytest.raises(IndexError):
            rng.choice([])
        with pytest.raises(ValueError):
            rng.randrange(0)
