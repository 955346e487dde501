"""
젬 가공 목표 판정 / 목표까지의 거리 / 등급 산정
"""

import math
from typing import Optional

from .constants import (
    ANCIENT_MIN,
    ANY_NAME,
    GEM_TYPES,
    GRADE_ANCIENT,
    GRADE_BELOW,
    GRADE_LEGEND,
    GRADE_RELIC,
    LEGEND_MAX,
    LEGEND_MIN,
    MAX_STAT,
    MIN_STAT,
    RELIC_MAX,
    RELIC_MIN,
    WILDCARD_NAMES,
)
from .models import ANY_ONE, BOTH, POSITION_ANY, POSITION_ATTACK, POSITION_SUPPORT, RefinementState, TargetSpec, normalize_position
from .processing import allowed_effect_names


def grade_of(score: int) -> str:
    """eff + pts + aLvl + bLvl 합계 -> 등급"""
    if score >= ANCIENT_MIN:
        return GRADE_ANCIENT
    if RELIC_MIN <= score <= RELIC_MAX:
        return GRADE_RELIC
    if LEGEND_MIN <= score <= LEGEND_MAX:
        return GRADE_LEGEND
    return GRADE_BELOW


def is_wildcard(name: Optional[str]) -> bool:
    return name in WILDCARD_NAMES


def _resolve_target_name(name: Optional[str], pool) -> Optional[str]:
    # 와일드카드 / 풀에 있는 이름만 유효, 나머지는 None (달성 불가)
    if is_wildcard(name):
        return ANY_NAME
    if name in pool:
        return name
    return None


def _line_matches(pool, line_name: str, line_lvl: int, target_name: str, lvl_req: int) -> bool:
    if target_name == ANY_NAME:
        return line_name in pool and line_lvl >= lvl_req
    return line_name == target_name and line_lvl >= lvl_req


def _line_cost(pool, line_name: str, line_lvl: int, target_name: str, lvl_req: int) -> int:
    # 이름 변경 1회 + 부족한 레벨
    if target_name == ANY_NAME:
        rename = 0 if line_name in pool else 1
    else:
        rename = 0 if line_name == target_name else 1
    return rename + max(0, lvl_req - line_lvl)


def meets_target(position: Optional[str], ab_mode: str, state: RefinementState, target: TargetSpec,
                 gem_key: str) -> bool:
    """목표 달성 여부. 포지션 필터가 있으면 효과 이름/레벨 조건까지 확인"""
    base = state.eff >= target.eff and state.pts >= target.pts
    pos = normalize_position(position)
    if pos == POSITION_ANY:
        return base

    pool = allowed_effect_names(gem_key, pos)
    ta = _resolve_target_name(target.a_name, pool)
    tb = _resolve_target_name(target.b_name, pool)

    if ab_mode == ANY_ONE:
        if ta is None:
            return False
        ok = (_line_matches(pool, state.a_name, state.a_lvl, ta, target.a_lvl)
              or _line_matches(pool, state.b_name, state.b_lvl, ta, target.a_lvl))
        return base and ok

    if ab_mode != BOTH:
        raise ValueError(f"알 수 없는 A/B 모드: {ab_mode!r}")
    if ta is None or tb is None:
        return False
    straight = (_line_matches(pool, state.a_name, state.a_lvl, ta, target.a_lvl)
                and _line_matches(pool, state.b_name, state.b_lvl, tb, target.b_lvl))
    crossed = (_line_matches(pool, state.a_name, state.a_lvl, tb, target.b_lvl)
               and _line_matches(pool, state.b_name, state.b_lvl, ta, target.a_lvl))
    return base and (straight or crossed)


def need_distance(position: Optional[str], ab_mode: str, state: RefinementState, target: TargetSpec,
                  gem_key: str) -> float:
    """목표까지 남은 최소 단계 수 (이름 변경으로도 닿을 수 없으면 inf)"""
    total = max(0, target.eff - state.eff) + max(0, target.pts - state.pts)
    pos = normalize_position(position)
    if pos == POSITION_ANY:
        return total

    pool = allowed_effect_names(gem_key, pos)
    ta = _resolve_target_name(target.a_name, pool)
    tb = _resolve_target_name(target.b_name, pool)

    if ab_mode == ANY_ONE:
        if ta is None:
            return math.inf
        return total + min(
            _line_cost(pool, state.a_name, state.a_lvl, ta, target.a_lvl),
            _line_cost(pool, state.b_name, state.b_lvl, ta, target.a_lvl),
        )

    if ab_mode != BOTH:
        raise ValueError(f"알 수 없는 A/B 모드: {ab_mode!r}")
    if ta is None or tb is None:
        return math.inf
    straight = (_line_cost(pool, state.a_name, state.a_lvl, ta, target.a_lvl)
                + _line_cost(pool, state.b_name, state.b_lvl, tb, target.b_lvl))
    crossed = (_line_cost(pool, state.a_name, state.a_lvl, tb, target.b_lvl)
               + _line_cost(pool, state.b_name, state.b_lvl, ta, target.a_lvl))
    return total + min(straight, crossed)


def validate_position_constraint(position: Optional[str], a_name: str, b_name: str, gem_key: str) -> bool:
    """딜러/서포터 포지션이면 현재 효과 중 하나 이상이 해당 풀에 속해야 함"""
    pos = normalize_position(position)
    if pos == POSITION_ANY:
        return True
    gem_type = GEM_TYPES[gem_key]
    if pos == POSITION_ATTACK:
        return a_name in gem_type["attack"] or b_name in gem_type["attack"]
    if pos == POSITION_SUPPORT:
        return a_name in gem_type["support"] or b_name in gem_type["support"]
    return True


def validate_state(state: RefinementState, gem_key: str) -> None:
    """입력 상태 검증 (이름 중복/풀 밖 이름/레벨 범위)"""
    names = allowed_effect_names(gem_key)
    if state.a_name == state.b_name:
        raise ValueError(f"A/B 효과 이름이 같음: {state.a_name}")
    for name in (state.a_name, state.b_name):
        if name not in names:
            raise ValueError(f"{gem_key} 젬에 없는 효과: {name}")
    for field_name in ("eff", "pts", "a_lvl", "b_lvl"):
        value = getattr(state, field_name)
        if not MIN_STAT <= value <= MAX_STAT:
            raise ValueError(f"{field_name}={value} 범위({MIN_STAT}~{MAX_STAT}) 벗어남")
