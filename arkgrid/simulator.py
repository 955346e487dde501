"""
젬 가공 Monte Carlo 평가기

시행을 배치 단위로 돌리며, 배치마다 성공률의 95% 정규근사 CI 반폭을 다시 계산해
목표 반폭(epsilon) 이하가 되면 조기 종료한다.
"""

import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    GRADE_ANCIENT,
    GRADE_BELOW,
    GRADE_LEGEND,
    GRADE_RELIC,
    OFFERED_ACTIONS,
    PERCENTILES,
    SEED_OFFSET_RUN,
    SEED_OFFSET_STOP,
    Z_95,
)
from .models import (
    AB_MODES,
    POLICIES,
    RUN_TO_END,
    STOP_ON_SUCCESS,
    ConfidenceInterval,
    RefinementSession,
    RefinementState,
    SimulationOptions,
    SimulationResult,
    TargetSpec,
    normalize_position,
)
from .processing import Action, ChangeEffect, allowed_effect_names, apply_action, build_weighted_items, sample_four
from .rng import XorShift32, make_deterministic_seed
from .targets import grade_of, meets_target, need_distance

logger = logging.getLogger(__name__)

# 제시된 4개 중 실제 적용 선택지 결정 방식
OFFICIAL = "official"  # 4개 중 균등 추출 (실제 게임)
GREEDY = "greedy"      # 목표 거리를 가장 줄이는 선택지 (비교용)
STRATEGIES = (OFFICIAL, GREEDY)

_GRADE_CODES = {GRADE_BELOW: 0, GRADE_LEGEND: 1, GRADE_RELIC: 2, GRADE_ANCIENT: 3}


class SimulationCancelled(Exception):
    """should_cancel()이 True를 반환해 시뮬레이션이 중단됨"""


def _half_width(p: float, n: int) -> float:
    return Z_95 * math.sqrt(max(p * (1 - p), 0.0) / max(n, 1))


def _confidence_interval(p: float, n: int) -> ConfidenceInterval:
    hw = _half_width(p, n)
    return ConfidenceInterval(low=max(0.0, p - hw), high=min(1.0, p + hw), half_width=hw)


def _single_result(state: RefinementState, success: bool) -> SimulationResult:
    """시행 없이 현재 상태만으로 평가 (가공 횟수 없음 / 이미 목표 달성)"""
    p = 1.0 if success else 0.0
    grade = grade_of(state.total())
    return SimulationResult(
        success_prob=p,
        legend_prob=1.0 if grade == GRADE_LEGEND else 0.0,
        relic_prob=1.0 if grade == GRADE_RELIC else 0.0,
        ancient_prob=1.0 if grade == GRADE_ANCIENT else 0.0,
        expected_gold=0.0,
        trials_used=1,
        ci=ConfidenceInterval(low=p, high=p, half_width=0.0),
        gold_percentiles={pct: 0.0 for pct in PERCENTILES},
        history=[(1, p, 0.0)],
    )


def _greedy_pick(gem_key, position, ab_mode, state, target, offered, rate, rng):
    names = allowed_effect_names(gem_key, position)
    can_change = any(n != state.a_name and n != state.b_name for n in names)
    before = need_distance(position, ab_mode, state, target, gem_key)

    best = None
    best_gain = None
    for action in offered:
        if isinstance(action, ChangeEffect) and not can_change:
            continue
        transition = apply_action(gem_key, state, action, rate, rng)
        gain = before - need_distance(position, ab_mode, transition.next_state, target, gem_key)
        if best is None or gain > best_gain:
            best, best_gain = transition, gain
    return best, best_gain


def evaluate_refinement(gem_key: str, position: Optional[str], ab_mode: str, start: RefinementState,
                        target: TargetSpec, policy: str, attempts_left: int, rerolls: int,
                        cost_add_rate: int, unlocked: bool,
                        first_four: Optional[Sequence[Action]] = None, seed: int = 1,
                        options: Optional[SimulationOptions] = None, strategy: str = OFFICIAL,
                        on_progress: Optional[Callable[[int, int], None]] = None,
                        should_cancel: Optional[Callable[[], bool]] = None) -> SimulationResult:
    """단일 정책(STOP_ON_SUCCESS / RUN_TO_END) 성공 확률, 등급 분포, 기대 골드 계산"""
    if policy not in POLICIES:
        raise ValueError(f"알 수 없는 정책: {policy!r}")
    if ab_mode not in AB_MODES:
        raise ValueError(f"알 수 없는 A/B 모드: {ab_mode!r}")
    if strategy not in STRATEGIES:
        raise ValueError(f"알 수 없는 선택 방식: {strategy!r}")
    position = normalize_position(position)
    allowed_effect_names(gem_key)

    opts = options or SimulationOptions()
    if opts.max_trials <= 0 or opts.batch <= 0:
        raise ValueError(f"잘못된 시행 설정: {opts}")

    stop_on_success = policy == STOP_ON_SUCCESS
    if attempts_left <= 0:
        return _single_result(start, meets_target(position, ab_mode, start, target, gem_key))
    if stop_on_success and meets_target(position, ab_mode, start, target, gem_key):
        return _single_result(start, True)

    fixed_first = list(first_four or [])[:OFFERED_ACTIONS]
    rng = XorShift32(seed)

    def simulate_once() -> Tuple[bool, str, int]:
        state = start
        left = attempts_left
        rr = rerolls
        is_unlocked = unlocked
        rate = cost_add_rate
        gold = 0
        first = True

        while left > 0:
            if first and fixed_first:
                offered: List[Action] = fixed_first
            else:
                items = build_weighted_items(state, left, gem_key, rate)
                if not items:
                    break
                offered = sample_four(items, rng)

            if strategy == OFFICIAL:
                # 제시된 4개와 별개로 실제 결과는 한 번 더 균등 추출
                pick = offered[rng.randrange(len(offered))]
                transition = apply_action(gem_key, state, pick, rate, rng)
            else:
                transition, gain = _greedy_pick(gem_key, position, ab_mode, state, target, offered, rate, rng)
                if transition is not None and gain <= 0 and is_unlocked and rr > 0:
                    rr -= 1
                    first = False
                    continue

            if transition is not None:
                state = transition.next_state
                gold += transition.gold
                rate = transition.next_rate
                rr += transition.reroll_delta
                is_unlocked = True

            left -= 1
            first = False
            if stop_on_success and meets_target(position, ab_mode, state, target, gem_key):
                break

        return meets_target(position, ab_mode, state, target, gem_key), grade_of(state.total()), gold

    # 배치별 배열을 모았다가 마지막에 합침 (메모리는 실제 시행 수에 비례)
    grade_batches: List[np.ndarray] = []
    gold_batches: List[np.ndarray] = []
    success_count = 0

    n = 0
    ci = ConfidenceInterval()
    history: List[Tuple[int, float, float]] = []
    while n < opts.max_trials:
        if should_cancel is not None and should_cancel():
            raise SimulationCancelled(f"{n}회 시행 후 중단")

        until = min(opts.batch, opts.max_trials - n)
        successes = np.zeros(until, dtype=np.int8)
        grades = np.zeros(until, dtype=np.int8)
        golds = np.zeros(until, dtype=np.float64)
        for i in range(until):
            success, grade, gold = simulate_once()
            successes[i] = success
            grades[i] = _GRADE_CODES[grade]
            golds[i] = gold
        grade_batches.append(grades)
        gold_batches.append(golds)
        success_count += int(successes.sum())
        n += until

        p = success_count / n
        ci = _confidence_interval(p, n)
        history.append((n, p, ci.half_width))
        if on_progress is not None:
            on_progress(n, opts.max_trials)
        if ci.half_width <= opts.epsilon:
            break

    used_grades = np.concatenate(grade_batches)
    used_golds = np.concatenate(gold_batches)
    percentiles = np.percentile(used_golds, PERCENTILES)

    result = SimulationResult(
        success_prob=success_count / n,
        legend_prob=float(np.mean(used_grades == _GRADE_CODES[GRADE_LEGEND])),
        relic_prob=float(np.mean(used_grades == _GRADE_CODES[GRADE_RELIC])),
        ancient_prob=float(np.mean(used_grades == _GRADE_CODES[GRADE_ANCIENT])),
        expected_gold=float(used_golds.mean()),
        trials_used=n,
        ci=ci,
        gold_percentiles={pct: float(v) for pct, v in zip(PERCENTILES, percentiles)},
        history=history,
    )
    logger.debug("%s/%s: %d회 시행, 성공 %.4f (±%.4f)", policy, strategy, n, result.success_prob, ci.half_width)
    return result


def eval_seed(gem_key: str, position: Optional[str], rarity: str, ab_mode: str, session: RefinementSession,
              target: TargetSpec, first_four: Optional[Sequence[Action]] = None,
              strategy: str = OFFICIAL) -> int:
    """평가 입력 스냅샷 전체에서 시드 유도"""
    return make_deterministic_seed({
        "gemKey": gem_key,
        "pos": normalize_position(position),
        "rarity": rarity,
        "abMode": ab_mode,
        "manual": session,
        "tgt": target,
        "firstFour": [action.key for action in (first_four or [])],
        "calcMode": strategy,
        "salt": "EVAL",
    })


def evaluate_both(gem_key: str, position: Optional[str], rarity: str, ab_mode: str,
                  session: RefinementSession, target: TargetSpec,
                  first_four: Optional[Sequence[Action]] = None,
                  options: Optional[SimulationOptions] = None, strategy: str = OFFICIAL,
                  on_progress: Optional[Callable[[int, int], None]] = None,
                  should_cancel: Optional[Callable[[], bool]] = None) -> Tuple[SimulationResult, SimulationResult]:
    """STOP_ON_SUCCESS / RUN_TO_END 두 정책 동시 평가 -> (stop, run)"""
    seed_base = eval_seed(gem_key, position, rarity, ab_mode, session, target, first_four, strategy)
    results = []
    for policy, offset in ((STOP_ON_SUCCESS, SEED_OFFSET_STOP), (RUN_TO_END, SEED_OFFSET_RUN)):
        results.append(evaluate_refinement(
            gem_key, position, ab_mode, session.state, target, policy,
            session.attempts_left, session.rerolls, session.cost_add_rate, session.unlocked,
            first_four=first_four, seed=seed_base + offset, options=options, strategy=strategy,
            on_progress=on_progress, should_cancel=should_cancel,
        ))
    return results[0], results[1]
