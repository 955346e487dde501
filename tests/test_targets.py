"""Tests for grade bands, target satisfaction and need distance."""
from __future__ import annotations

import math

import pytest

from arkgrid.constants import GRADE_ANCIENT, GRADE_BELOW, GRADE_LEGEND, GRADE_RELIC
from arkgrid.models import ANY_ONE, BOTH, RefinementState, TargetSpec
from arkgrid.targets import grade_of, meets_target, need_distance, validate_position_constraint, validate_state

GEM = "질서-안정"


def make_state(eff=4, pts=4, a_name="공격력", a_lvl=3, b_name="추가 피해", b_lvl=2) -> RefinementState:
    return RefinementState(eff=eff, pts=pts, a_name=a_name, a_lvl=a_lvl, b_name=b_name, b_lvl=b_lvl)


class TestGrade:
    @pytest.mark.parametrize("score,grade", [
        (3, GRADE_BELOW), (4, GRADE_LEGEND), (15, GRADE_LEGEND), (16, GRADE_RELIC),
        (18, GRADE_RELIC), (19, GRADE_ANCIENT), (20, GRADE_ANCIENT),
    ])
    def test_grade_bands(self, score, grade):
        assert grade_of(score) == grade


class TestMeetsTarget:
    def test_any_position_checks_only_base(self):
        state = make_state(eff=5, pts=5, a_lvl=1, b_lvl=1)
        target = TargetSpec(eff=5, pts=5, a_lvl=5, b_lvl=5, a_name="낙인력", b_name="낙인력")
        assert meets_target("any", BOTH, state, target, GEM)
        assert not meets_target("상관 없음", BOTH, make_state(eff=4), target, GEM)

    def test_any_one_matches_either_line(self):
        state = make_state(a_lvl=1, b_name="추가 피해", b_lvl=4)
        target = TargetSpec(eff=4, pts=4, a_lvl=4, a_name="추가 피해")
        assert meets_target("attack", ANY_ONE, state, target, GEM)
        assert not meets_target("attack", ANY_ONE, state, TargetSpec(4, 4, a_lvl=5, a_name="추가 피해"), GEM)

    def test_wildcard_requires_name_in_position_pool(self):
        target = TargetSpec(eff=4, pts=4, a_lvl=2, a_name="상관없음")
        assert meets_target("attack", ANY_ONE, make_state(), target, GEM)
        support_names = make_state(a_name="낙인력", b_name="아군 피해 강화", a_lvl=5, b_lvl=5)
        assert not meets_target("attack", ANY_ONE, support_names, target, GEM)

    def test_both_accepts_crossed_assignment(self):
        state = make_state(a_name="추가 피해", a_lvl=4, b_name="공격력", b_lvl=3)
        target = TargetSpec(eff=4, pts=4, a_lvl=3, b_lvl=4, a_name="공격력", b_name="추가 피해")
        assert meets_target("딜러", BOTH, state, target, GEM)

    def test_both_requires_both_lines(self):
        state = make_state(a_lvl=5, b_lvl=1)
        target = TargetSpec(eff=4, pts=4, a_lvl=3, b_lvl=3, a_name="공격력", b_name="추가 피해")
        assert not meets_target("attack", BOTH, state, target, GEM)

    def test_base_still_required(self):
        target = TargetSpec(eff=5, pts=4, a_lvl=1, b_lvl=1, a_name="상관없음", b_name="상관없음")
        assert not meets_target("attack", BOTH, make_state(eff=4), target, GEM)

    def test_unresolvable_target_names(self):
        state = make_state(a_lvl=5, b_lvl=5)
        assert not meets_target("attack", ANY_ONE, state, TargetSpec(4, 4, a_lvl=1, a_name=None), GEM)
        assert not meets_target("attack", BOTH, state, TargetSpec(4, 4, a_lvl=1, b_lvl=1, a_name="공격력",
                                                                   b_name="낙인력"), GEM)

    def test_unknown_ab_mode(self):
        with pytest.raises(ValueError):
            meets_target("attack", "EITHER", make_state(), TargetSpec(4, 4, a_name="공격력"), GEM)


class TestNeedDistance:
    def test_zero_when_met(self):
        target = TargetSpec(eff=4, pts=4, a_lvl=3, a_name="공격력")
        assert need_distance("attack", ANY_ONE, make_state(), target, GEM) == 0

    def test_any_position_counts_base_only(self):
        target = TargetSpec(eff=5, pts=5, a_lvl=5, b_lvl=5)
        assert need_distance("any", BOTH, make_state(eff=3, pts=2), target, GEM) == 5

    def test_rename_counts_one_step(self):
        state = make_state(a_name="낙인력", a_lvl=4, b_name="아군 피해 강화", b_lvl=1)
        target = TargetSpec(eff=4, pts=4, a_lvl=4, a_name="공격력")
        assert need_distance("attack", ANY_ONE, state, target, GEM) == 1

    def test_both_takes_cheaper_assignment(self):
        state = make_state(a_name="추가 피해", a_lvl=4, b_name="공격력", b_lvl=2)
        target = TargetSpec(eff=4, pts=4, a_lvl=3, b_lvl=4, a_name="공격력", b_name="추가 피해")
        # 교차 배정: 공격력 Lv2 -> 3 (1단계), 추가 피해 Lv4 (0단계)
        assert need_distance("attack", BOTH, state, target, GEM) == 1

    def test_unresolvable_is_infinite(self):
        target = TargetSpec(eff=4, pts=4, a_lvl=1, a_name="없는 효과")
        assert need_distance("attack", ANY_ONE, make_state(), target, GEM) == math.inf


class TestValidation:
    def test_position_constraint(self):
        assert validate_position_constraint("attack", "공격력", "낙인력", GEM)
        assert not validate_position_constraint("attack", "낙인력", "아군 피해 강화", GEM)
        assert validate_position_constraint("서포터", "공격력", "낙인력", GEM)
        assert not validate_position_constraint("support", "공격력", "추가 피해", GEM)
        assert validate_position_constraint(None, "공격력", "추가 피해", GEM)

    def test_valid_state_passes(self):
        validate_state(make_state(), GEM)

    @pytest.mark.parametrize("state", [
        make_state(a_name="공격력", b_name="공격력"),
        make_state(b_name="보스 피해"),
        make_state(eff=6),
        make_state(b_lvl=-1),
    ])
    def test_invalid_states(self, state):
        with pytest.raises(ValueError):
            validate_state(state, GEM)
