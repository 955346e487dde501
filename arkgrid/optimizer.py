"""
코어별 젬 조합 열거 + 우선순위(그리디) 배치

코어 목록의 순서가 곧 우선순위다. 앞 코어가 가져간 젬은 뒤 코어 후보에서
제외되며, 되돌리기(백트래킹)는 하지 않는다. 전역 최적해를 보장하지 않는 대신
코어 수에 선형인 실행 시간을 갖는다.
"""

import logging
from itertools import combinations
from math import comb
from typing import Callable, List, Mapping, Optional, Sequence

from .constants import (
    CORE_POINT_CAP,
    CORE_SUPPLY,
    CORE_THRESHOLDS,
    GRADES,
    MAX_GEMS_PER_CORE,
    MAX_POOL_SIZE,
    ROLES,
    TARGET_MAX_BY_GRADE,
)
from .models import ComboInfo, CoreDefinition, Gem
from .scoring import gem_priority, sanitize_weights, score_combo

logger = logging.getLogger(__name__)


def count_combinations(pool_size: int) -> int:
    """1~4개 조합의 총 개수 (진행률 분모)"""
    return sum(comb(pool_size, k) for k in range(1, min(MAX_GEMS_PER_CORE, pool_size) + 1))


def _check_min_threshold(grade: str, min_threshold: Optional[int], label: str = "") -> None:
    # 목표 포인트는 등급의 활성 구간 중 하나 (최소 구간 ~ 등급 최대)
    if min_threshold is None:
        return
    low, high = min(CORE_THRESHOLDS[grade]), TARGET_MAX_BY_GRADE[grade]
    if not low <= min_threshold <= high:
        raise ValueError(f"{label}목표 구간 {min_threshold}P는 {grade} 등급 범위({low}~{high}P)를 벗어남")


def validate_core(core: CoreDefinition) -> None:
    if core.grade not in GRADES:
        raise ValueError(f"알 수 없는 코어 등급: {core.grade!r}")
    _check_min_threshold(core.grade, core.min_threshold, f"{core.name or core.id}: ")


def limit_pool(pool: Sequence[Gem], role: Optional[str], weights: Mapping[str, float],
               max_pool_size: Optional[int] = MAX_POOL_SIZE, curve: bool = False) -> List[Gem]:
    """풀이 상한을 넘으면 우선순위가 낮은 젬부터 제외 (원래 순서는 유지)"""
    if max_pool_size is None or len(pool) <= max_pool_size:
        return list(pool)
    ranked = sorted(range(len(pool)), key=lambda i: gem_priority(pool[i], role, weights, curve), reverse=True)
    keep = sorted(ranked[:max_pool_size])
    logger.warning("젬 풀 %d개 중 상위 %d개만 조합 탐색에 사용", len(pool), max_pool_size)
    return [pool[i] for i in keep]


def _filter_candidates(candidates: List[ComboInfo], grade: str, min_threshold: Optional[int],
                       enforce_min: bool) -> List[ComboInfo]:
    if enforce_min:
        eff_min = min_threshold if min_threshold is not None else min(CORE_THRESHOLDS[grade])
        return [ci for ci in candidates if ci.max_threshold >= eff_min]

    if min_threshold is not None:
        # 목표 포인트와 정확히 같은 조합 우선, 없으면 상한까지 한 칸씩 올려가며 탐색
        for target_point in range(min_threshold, CORE_POINT_CAP[grade] + 1):
            exact = [ci for ci in candidates if ci.total_point == target_point]
            if exact:
                return exact
        return []

    return [ci for ci in candidates if ci.thr]


def enumerate_core_combos(pool: Sequence[Gem], grade: str, role: Optional[str], weights: Optional[Mapping[str, float]],
                          min_threshold: Optional[int] = None, enforce_min: bool = False,
                          supply_override: Optional[int] = None,
                          on_step: Optional[Callable[[int], None]] = None,
                          max_pool_size: Optional[int] = MAX_POOL_SIZE,
                          curve: bool = False) -> List[ComboInfo]:
    """단일 코어 후보 조합 산출 (점수 내림차순, 결과가 없으면 빈 조합 1개)"""
    if grade not in CORE_SUPPLY:
        raise ValueError(f"알 수 없는 코어 등급: {grade!r}")
    if role is not None and role not in ROLES:
        raise ValueError(f"알 수 없는 역할: {role!r}")
    _check_min_threshold(grade, min_threshold)

    supply = CORE_SUPPLY[grade] if supply_override is None else supply_override
    point_cap = CORE_POINT_CAP[grade]
    w = sanitize_weights(weights)
    gems = limit_pool(pool, role, w, max_pool_size, curve)

    # 빈 조합은 어떤 필터 정책에서도 채택되지 않으므로 1개부터 열거
    candidates: List[ComboInfo] = []
    for k in range(1, min(MAX_GEMS_PER_CORE, len(gems)) + 1):
        for combo in combinations(gems, k):
            if on_step:
                on_step(1)
            if sum(g.will or 0 for g in combo) > supply:
                continue
            total_will, total_point, thr, role_sum, score = score_combo(combo, grade, role, w, curve)
            if total_point > point_cap:
                continue
            candidates.append(ComboInfo(combo, total_will, total_point, thr, role_sum, score))

    candidates.sort(key=lambda ci: ci.score, reverse=True)
    filtered = _filter_candidates(candidates, grade, min_threshold, enforce_min)
    if not filtered:
        return [ComboInfo.empty()]
    return filtered


def allocate_by_priority(cores: Sequence[CoreDefinition], pool: Sequence[Gem], role: Optional[str],
                         weights: Optional[Mapping[str, float]], curve: bool = False,
                         on_progress: Optional[Callable[[int, int], None]] = None,
                         max_pool_size: Optional[int] = MAX_POOL_SIZE) -> List[ComboInfo]:
    """우선순위(목록 순서)대로 코어마다 최선 조합을 고르고, 고른 젬은 풀에서 제거"""
    for core in cores:
        validate_core(core)
    w = sanitize_weights(weights)

    remaining = list(pool)
    picks: List[ComboInfo] = []
    for index, core in enumerate(cores):
        candidates = enumerate_core_combos(
            remaining, core.grade, role, w, core.min_threshold, core.enforce_min,
            max_pool_size=max_pool_size, curve=curve,
        )
        choice = next((ci for ci in candidates if not ci.is_empty), candidates[0])
        picks.append(choice)

        chosen_ids = {g.id for g in choice.gems}
        remaining = [g for g in remaining if g.id not in chosen_ids]
        logger.debug("코어 %s(%s): %d개 젬 배정, %dP, 남은 젬 %d개",
                     core.name or core.id, core.grade, len(choice.gems), choice.total_point, len(remaining))
        if on_progress:
            on_progress(index + 1, len(cores))
    return picks
