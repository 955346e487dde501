"""
리롤(다른 항목 보기) 추천

한 수 앞만 보는 룩어헤드 휴리스틱이다.
- 현재: 제시된 선택지 각각을 적용한 뒤 RUN_TO_END 성공 확률의 단순 평균
- 리롤: 리롤 1회를 소모하고 새로 뽑은 4개 세트 N개에 대해 같은 방식으로 구한 값의 평균
두 값의 차이가 tau를 넘을 때만 추천/비추천하며, 전체 게임 트리 탐색은 하지 않는다.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence

from .constants import (
    ADVISOR_BATCH,
    ADVISOR_EPSILON,
    ADVISOR_MAX_TRIALS,
    REROLL_SAMPLES,
    REROLL_TAU,
    SEED_OFFSET_NOW,
    SEED_OFFSET_REROLL_BASE,
    SEED_OFFSET_REROLL_EVAL,
    SEED_OFFSET_REROLL_STEP,
)
from .models import ANY_ONE, POSITION_ANY, RUN_TO_END, RefinementSession, RerollAdvice, SimulationOptions, TargetSpec, normalize_position
from .processing import Action, ChangeEffect, apply_action, build_weighted_items, can_change_effect, sample_four
from .rng import XorShift32, hash32, make_deterministic_seed
from .simulator import SimulationCancelled, evaluate_refinement

logger = logging.getLogger(__name__)

REASON_LOCKED = "첫 가공 이전에는 리롤 추천을 하지 않습니다."
REASON_NO_REROLL = "리롤이 없습니다."
REASON_FINISHED = "가공이 완료되어 리롤 판단이 무의미합니다."

ADVISOR_OPTIONS = SimulationOptions(max_trials=ADVISOR_MAX_TRIALS, epsilon=ADVISOR_EPSILON, batch=ADVISOR_BATCH)


def _pct(x: float) -> str:
    return f"{x * 100:.2f}%"


def expected_success_for_actions(actions: Sequence[Action], gem_key: str, position: str, ab_mode: str,
                                 session: RefinementSession, target: TargetSpec, seed: int,
                                 options: SimulationOptions = ADVISOR_OPTIONS) -> float:
    """각 선택지를 적용한 뒤 끝까지 진행했을 때 성공 확률의 단순 평균"""
    acc = 0.0
    count = 0
    for action in actions:
        if isinstance(action, ChangeEffect) and not can_change_effect(gem_key, session.state):
            continue
        action_seed = seed + hash32(action.key)
        transition = apply_action(gem_key, session.state, action, session.cost_add_rate, XorShift32(action_seed))
        result = evaluate_refinement(
            gem_key, position, ab_mode, transition.next_state, target, RUN_TO_END,
            session.attempts_left - 1, session.rerolls + transition.reroll_delta,
            transition.next_rate, True, seed=action_seed, options=options,
        )
        acc += result.success_prob
        count += 1
    return acc / count if count else 0.0


def advise_reroll(gem_key: str, position: Optional[str], ab_mode: str, session: RefinementSession,
                  target: TargetSpec, current_four: Sequence[Action], samples: int = REROLL_SAMPLES,
                  tau: float = REROLL_TAU, options: Optional[SimulationOptions] = None,
                  on_progress: Optional[Callable[[int, int], None]] = None,
                  should_cancel: Optional[Callable[[], bool]] = None) -> RerollAdvice:
    """현재 4개 유지 vs 리롤 기대 성공 확률 비교"""
    if not session.unlocked:
        return RerollAdvice(False, REASON_LOCKED)
    if session.rerolls <= 0:
        return RerollAdvice(False, REASON_NO_REROLL)
    if session.attempts_left <= 0:
        return RerollAdvice(False, REASON_FINISHED)
    if samples <= 0:
        raise ValueError(f"리롤 샘플 수는 1 이상이어야 함: {samples}")

    pos = normalize_position(position)
    ab_for_eval = ANY_ONE if pos == POSITION_ANY else ab_mode
    opts = options or ADVISOR_OPTIONS

    seed_base = make_deterministic_seed({
        "gemKey": gem_key,
        "pos": pos,
        "manual": session,
        "tgt": target,
        "manActions": [action.key for action in current_four],
        "abForEval": ab_for_eval,
        "salt": "REROLL_EV",
    })

    total_steps = samples + 1
    now_prob = expected_success_for_actions(
        current_four, gem_key, pos, ab_for_eval, session, target, seed_base + SEED_OFFSET_NOW, opts)
    if on_progress:
        on_progress(1, total_steps)

    after_reroll = replace(session, rerolls=session.rerolls - 1)
    acc = 0.0
    for i in range(samples):
        if should_cancel is not None and should_cancel():
            raise SimulationCancelled(f"리롤 샘플 {i}/{samples}에서 중단")
        seed = seed_base + SEED_OFFSET_REROLL_BASE + i * SEED_OFFSET_REROLL_STEP
        items = build_weighted_items(after_reroll.state, after_reroll.attempts_left, gem_key,
                                     after_reroll.cost_add_rate)
        new_four = sample_four(items, XorShift32(seed))
        acc += expected_success_for_actions(
            new_four, gem_key, pos, ab_for_eval, after_reroll, target, seed + SEED_OFFSET_REROLL_EVAL, opts)
        if on_progress:
            on_progress(i + 2, total_steps)

    reroll_prob = acc / samples
    delta = reroll_prob - now_prob

    if delta > tau:
        should_reroll = True
        reason = (f"룩어헤드 기준 리롤 추천: 현재 최선 {_pct(now_prob)} → "
                  f"리롤 기대 {_pct(reroll_prob)} (▲{_pct(delta)}).")
    elif delta < -tau:
        should_reroll = False
        reason = (f"룩어헤드 기준 리롤 비추천: 현재 최선 {_pct(now_prob)}가 "
                  f"리롤 기대 {_pct(reroll_prob)}보다 유리 (▼{_pct(-delta)}).")
    else:
        should_reroll = False
        reason = f"두 경로 차이 미미: 현재 {_pct(now_prob)} vs 리롤 {_pct(reroll_prob)} (|Δ| < {tau * 100:.2f}%)."

    logger.debug("리롤 판단: now=%.4f reroll=%.4f delta=%.4f", now_prob, reroll_prob, delta)
    return RerollAdvice(should_reroll, reason, now_prob, reroll_prob, delta)
