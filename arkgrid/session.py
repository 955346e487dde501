"""
수동 가공 세션 (한 번에 한 선택지씩 직접 적용)
"""

from dataclasses import replace
from typing import List, Optional, Sequence

from .constants import OFFERED_ACTIONS, RARITY_ATTEMPTS, RARITY_BASE_REROLLS
from .models import RefinementSession, RefinementState
from .processing import A_LVL, B_LVL, EFF, PTS, Action, Hold, StatDelta, apply_action, build_weighted_items
from .rng import XorShift32


class SessionError(ValueError):
    """현재 세션 상태에서 허용되지 않는 조작"""


def start_session(rarity: str, state: RefinementState) -> RefinementSession:
    if rarity not in RARITY_ATTEMPTS:
        raise ValueError(f"알 수 없는 젬 등급: {rarity!r}")
    return RefinementSession(
        attempts_left=RARITY_ATTEMPTS[rarity],
        rerolls=RARITY_BASE_REROLLS[rarity],
        unlocked=False,
        cost_add_rate=0,
        gold=0,
        state=state,
    )


def available_actions(session: RefinementSession, gem_key: str) -> List[Action]:
    """현재 등장 가능한 선택지 전체"""
    items = build_weighted_items(session.state, session.attempts_left, gem_key, session.cost_add_rate)
    return [item.action for item in items]


def default_four(session: RefinementSession, gem_key: str) -> List[Action]:
    """기본 4칸: 의지력 효율 +1, 포인트 +1, A +1, B +1 (없으면 앞에서부터 남은 선택지로 채움)"""
    available = available_actions(session, gem_key)
    wanted = [StatDelta(EFF, 1), StatDelta(PTS, 1), StatDelta(A_LVL, 1), StatDelta(B_LVL, 1)]

    out: List[Action] = []
    cursor = 0
    for action in wanted[:OFFERED_ACTIONS]:
        if action in available and action not in out:
            out.append(action)
            continue
        while cursor < len(available) and available[cursor] in out:
            cursor += 1
        out.append(available[cursor] if cursor < len(available) else Hold())
        cursor += 1
    return out


def has_duplicate_actions(actions: Sequence[Action]) -> bool:
    keys = [action.key for action in actions]
    return len(set(keys)) != len(keys)


def apply_manual(session: RefinementSession, gem_key: str, action: Action,
                 rng: Optional[XorShift32] = None) -> RefinementSession:
    """선택지 하나를 적용한 새 세션 반환"""
    if session.attempts_left <= 0:
        raise SessionError("남은 가공 횟수가 없습니다.")
    if action not in available_actions(session, gem_key):
        raise SessionError(f"미등장 조건으로 현재 선택은 사용할 수 없어요: {action.label(session.state)}")

    transition = apply_action(gem_key, session.state, action, session.cost_add_rate, rng or XorShift32(1))
    return RefinementSession(
        attempts_left=session.attempts_left - 1,
        rerolls=session.rerolls + transition.reroll_delta,
        unlocked=True,
        cost_add_rate=transition.next_rate,
        gold=session.gold + transition.gold,
        state=transition.next_state,
    )


def use_reroll(session: RefinementSession) -> RefinementSession:
    """다른 항목 보기 1회 사용"""
    if not session.unlocked:
        raise SessionError("가공 1회 이후부터 리롤을 사용할 수 있어요.")
    if session.rerolls <= 0:
        raise SessionError("리롤 횟수가 부족해요.")
    return replace(session, rerolls=session.rerolls - 1)
