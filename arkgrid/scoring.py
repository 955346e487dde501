"""
젬 역할 점수 / 코어 활성화 구간 계산
"""

import math
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .constants import (
    CORE_THRESHOLDS,
    DEFAULT_WEIGHTS,
    LEVEL_CURVES,
    OPTIONS,
    ROLE_KEYS,
    SCORE_POINT_WEIGHT,
    SCORE_THRESHOLD_WEIGHT,
    SCORE_WILL_BASE,
    SCORE_WILL_WEIGHT,
)
from .models import Gem


def sanitize_weights(weights: Optional[Mapping[str, object]], base: Mapping[str, float] = DEFAULT_WEIGHTS) -> Dict[str, float]:
    """누락/음수/숫자가 아닌 가중치는 기본값으로 대체 (예외 없음)"""
    result = {key: float(base.get(key, 1.0)) for key in OPTIONS}
    if not weights:
        return result
    for key in OPTIONS:
        raw = weights.get(key)
        try:
            num = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if math.isfinite(num) and num >= 0:
            result[key] = num
    return result


def level_value(role: str, key: str, level: Optional[int], curve: bool = False) -> float:
    """옵션 레벨의 가치. curve=True면 레벨별 효과표, 아니면 레벨 그대로"""
    lvl = level or 0
    if not curve:
        return float(lvl)
    table = LEVEL_CURVES.get(role, {}).get(key)
    if table is None:
        return 0.0
    return table[max(0, min(len(table) - 1, lvl))]


def score_gem_for_role(gem: Gem, role: Optional[str], weights: Mapping[str, float], curve: bool = False) -> float:
    """역할에 해당하는 옵션만 점수에 반영"""
    if role is None:
        return 0.0
    keys = ROLE_KEYS[role]
    total = 0.0
    for key, level in ((gem.o1k, gem.o1v), (gem.o2k, gem.o2v)):
        if key in keys:
            total += level_value(role, key, level, curve) * weights.get(key, 1.0)
    return total


def thresholds_hit(grade: str, total_point: int) -> Tuple[int, ...]:
    return tuple(t for t in CORE_THRESHOLDS[grade] if total_point >= t)


def score_combo(gems: Sequence[Gem], grade: str, role: Optional[str], weights: Mapping[str, float],
                curve: bool = False) -> Tuple[int, int, Tuple[int, ...], float, float]:
    """조합의 (총 의지력, 총 포인트, 달성 구간, 역할 점수, 종합 점수) 계산

    종합 점수는 구간 수 > 포인트 > 의지력 절약 > 역할 점수 > 젬 개수 순으로
    사전식 우선순위가 되도록 자릿수를 나눠 합산한다.
    """
    total_will = sum(g.will or 0 for g in gems)
    total_point = sum(g.point or 0 for g in gems)
    thr = thresholds_hit(grade, total_point)
    role_sum = sum(score_gem_for_role(g, role, weights, curve) for g in gems)
    score = (len(thr) * SCORE_THRESHOLD_WEIGHT
             + total_point * SCORE_POINT_WEIGHT
             + (SCORE_WILL_BASE - total_will) * SCORE_WILL_WEIGHT
             + role_sum
             - len(gems))
    return total_will, total_point, thr, role_sum, score


def gem_priority(gem: Gem, role: Optional[str], weights: Mapping[str, float], curve: bool = False) -> Tuple[int, int, float]:
    """풀 상한 적용 시 젬 정렬 키 (높을수록 유지)"""
    return (gem.point or 0, -(gem.will or 0), score_gem_for_role(gem, role, weights, curve))
