"""
젬 가공 선택지 테이블 / 상태 전이

한 번의 가공은 다음 순서로 진행된다.
1. 현재 상태에서 등장 가능한 선택지와 가중치 목록을 만든다 (build_weighted_items)
2. 가중치 비복원 추출로 4개를 제시한다 (sample_four)
3. 제시된 4개 중 하나를 균등하게 다시 뽑아 적용한다 (apply_action)
"""

from dataclasses import dataclass, replace
from itertools import permutations
from typing import List, NamedTuple, Optional, Sequence, Union

from .constants import (
    CHANGE_EFFECT_WEIGHT,
    COST_FLAG_WEIGHT,
    GEM_TYPES,
    HOLD_WEIGHT,
    MAX_STAT,
    MIN_STAT,
    OFFERED_ACTIONS,
    PROCESSING_COST,
    REROLL_PLUS_WEIGHTS,
    STAT_DELTA_WEIGHTS,
)
from .models import POSITION_ATTACK, POSITION_SUPPORT, RefinementState, normalize_position
from .rng import XorShift32

# 가공 대상 수치
EFF = "eff"
PTS = "pts"
A_LVL = "a_lvl"
B_LVL = "b_lvl"
STATS = (EFF, PTS, A_LVL, B_LVL)

LINE_A = "A"
LINE_B = "B"

# 수치별 등장 순서 (+1, +2, +3, +4, -1)
STAT_DELTAS = (1, 2, 3, 4, -1)

_STAT_LABELS = {EFF: "의지력 효율", PTS: "포인트"}


@dataclass(frozen=True)
class StatDelta:
    stat: str
    delta: int

    @property
    def key(self) -> str:
        return f"{self.stat}_{self.delta:+d}"

    def label(self, state: RefinementState) -> str:
        sign = f"+{self.delta}" if self.delta > 0 else "-1"
        if self.stat == A_LVL:
            return f"{state.a_name} Lv. {sign}"
        if self.stat == B_LVL:
            return f"{state.b_name} Lv. {sign}"
        return f"{_STAT_LABELS[self.stat]} {sign}"


@dataclass(frozen=True)
class ChangeEffect:
    line: str

    @property
    def key(self) -> str:
        return f"change_{self.line.lower()}"

    def label(self, state: RefinementState) -> str:
        name = state.a_name if self.line == LINE_A else state.b_name
        return f"{name} 변경"


@dataclass(frozen=True)
class CostFlag:
    mod: int

    @property
    def key(self) -> str:
        return f"cost_{self.mod:+d}"

    def label(self, state: RefinementState) -> str:
        return "가공 비용 +100% 증가" if self.mod == 1 else "가공 비용 -100% 감소"


@dataclass(frozen=True)
class RerollPlus:
    amount: int

    @property
    def key(self) -> str:
        return f"reroll_+{self.amount}"

    def label(self, state: RefinementState) -> str:
        return f"다른 항목 보기 +{self.amount}회"


@dataclass(frozen=True)
class Hold:
    @property
    def key(self) -> str:
        return "hold"

    def label(self, state: RefinementState) -> str:
        return "가공 상태 유지"


Action = Union[StatDelta, ChangeEffect, CostFlag, RerollPlus, Hold]


class WeightedAction(NamedTuple):
    action: Action
    weight: float


class Transition(NamedTuple):
    next_state: RefinementState
    gold: int
    next_rate: int
    reroll_delta: int


def _all_actions() -> List[Action]:
    actions: List[Action] = [StatDelta(stat, delta) for stat in STATS for delta in STAT_DELTAS]
    actions += [ChangeEffect(LINE_A), ChangeEffect(LINE_B), CostFlag(1), CostFlag(-1),
                RerollPlus(1), RerollPlus(2), Hold()]
    return actions


ACTIONS_BY_KEY = {action.key: action for action in _all_actions()}


def action_from_key(key: str) -> Action:
    """key 문자열 -> 선택지 (CLI / 워커 메시지 입력용)"""
    try:
        return ACTIONS_BY_KEY[key]
    except KeyError:
        raise ValueError(f"알 수 없는 가공 선택지: {key!r}") from None


# === 등장 조건 ===
def plus_appears(value: int, delta: int) -> bool:
    """+N은 적용 후 최대치를 넘지 않을 때만 등장"""
    return value + delta <= MAX_STAT


def minus_appears(value: int) -> bool:
    """-1은 현재 값이 1이 아니면 등장 (0에서도 등장)"""
    return value != 1


def allowed_effect_names(gem_key: str, position: Optional[str] = None) -> List[str]:
    """젬 타입/포지션별 허용 효과 이름"""
    if gem_key not in GEM_TYPES:
        raise ValueError(f"알 수 없는 젬 타입: {gem_key!r}")
    gem_type = GEM_TYPES[gem_key]
    pos = normalize_position(position)
    if pos == POSITION_ATTACK:
        return list(gem_type["attack"])
    if pos == POSITION_SUPPORT:
        return list(gem_type["support"])
    return list(gem_type["attack"]) + list(gem_type["support"])


def change_candidates(gem_key: str, state: RefinementState) -> List[str]:
    """효과 변경 시 바뀔 수 있는 이름 (A/B 공통: 현재 두 이름 제외)"""
    return [n for n in allowed_effect_names(gem_key) if n != state.a_name and n != state.b_name]


def can_change_effect(gem_key: str, state: RefinementState) -> bool:
    return len(change_candidates(gem_key, state)) > 0


def cost_toggle_appears(cost_add_rate: int, mod: int, attempts_left: int) -> bool:
    """이미 같은 상태가 아니고, 남은 가공이 2회 이상일 때만 등장"""
    return attempts_left > 1 and cost_add_rate != mod


def reroll_plus_appears(attempts_left: int) -> bool:
    return attempts_left > 1


def _stat_value(state: RefinementState, stat: str) -> int:
    return getattr(state, stat)


def build_weighted_items(state: RefinementState, attempts_left: int, gem_key: str,
                         cost_add_rate: int) -> List[WeightedAction]:
    """현재 상태에서 등장 가능한 선택지와 가중치 (고정 순서)"""
    items: List[WeightedAction] = []
    for stat in STATS:
        value = _stat_value(state, stat)
        for delta in STAT_DELTAS:
            appears = minus_appears(value) if delta < 0 else plus_appears(value, delta)
            if appears:
                items.append(WeightedAction(StatDelta(stat, delta), STAT_DELTA_WEIGHTS[delta]))

    if can_change_effect(gem_key, state):
        items.append(WeightedAction(ChangeEffect(LINE_A), CHANGE_EFFECT_WEIGHT))
        items.append(WeightedAction(ChangeEffect(LINE_B), CHANGE_EFFECT_WEIGHT))

    for mod in (1, -1):
        if cost_toggle_appears(cost_add_rate, mod, attempts_left):
            items.append(WeightedAction(CostFlag(mod), COST_FLAG_WEIGHT))

    if reroll_plus_appears(attempts_left):
        for amount in (1, 2):
            items.append(WeightedAction(RerollPlus(amount), REROLL_PLUS_WEIGHTS[amount]))

    items.append(WeightedAction(Hold(), HOLD_WEIGHT))
    return items


def weighted_pick_index(items: Sequence[WeightedAction], rng: XorShift32) -> int:
    """누적 가중치 선형 탐색으로 인덱스 하나 추출"""
    total = sum(item.weight for item in items)
    r = rng.random() * total
    for i, item in enumerate(items):
        r -= item.weight
        if r <= 0:
            return i
    return len(items) - 1


def sample_four(items: Sequence[WeightedAction], rng: XorShift32, count: int = OFFERED_ACTIONS) -> List[Action]:
    """가중치 비복원 추출 (뽑힌 항목은 다음 추출에서 제외)"""
    remaining = list(items)
    picked: List[Action] = []
    for _ in range(min(count, len(remaining))):
        idx = weighted_pick_index(remaining, rng)
        picked.append(remaining.pop(idx).action)
    return picked


def four_set_probability(indices: Sequence[int], weights: Sequence[float]) -> float:
    """특정 조합이 제시될 정확한 확률 (모든 뽑힘 순서의 합)"""
    total_prob = 0.0

    for perm in permutations(indices):
        perm_prob = 1.0
        remaining_weights = list(weights)
        remaining_total = sum(remaining_weights)

        for idx in perm:
            if remaining_total <= 0 or remaining_weights[idx] <= 0:
                perm_prob = 0.0
                break
            perm_prob *= remaining_weights[idx] / remaining_total
            remaining_total -= remaining_weights[idx]
            remaining_weights[idx] = 0

        total_prob += perm_prob

    return total_prob


def processing_gold(cost_add_rate: int) -> int:
    """이번 가공 비용: +100%면 2배, -100%면 무료"""
    if cost_add_rate == -1:
        return 0
    if cost_add_rate == 1:
        return PROCESSING_COST * 2
    return PROCESSING_COST


def _clamp(value: int) -> int:
    return max(MIN_STAT, min(MAX_STAT, value))


def apply_action(gem_key: str, state: RefinementState, action: Action, cost_add_rate: int,
                 rng: XorShift32) -> Transition:
    """선택지 적용 -> (다음 상태, 소모 골드, 다음 비용 상태, 리롤 증감)"""
    gold = processing_gold(cost_add_rate)
    next_state = state
    next_rate = cost_add_rate
    reroll_delta = 0

    if isinstance(action, StatDelta):
        value = _clamp(_stat_value(state, action.stat) + action.delta)
        next_state = replace(state, **{action.stat: value})
    elif isinstance(action, ChangeEffect):
        candidates = change_candidates(gem_key, state)
        if candidates:
            name = rng.choice(candidates)
            field_name = "a_name" if action.line == LINE_A else "b_name"
            next_state = replace(state, **{field_name: name})
    elif isinstance(action, CostFlag):
        next_rate = action.mod
    elif isinstance(action, RerollPlus):
        reroll_delta = action.amount
    elif not isinstance(action, Hold):
        raise TypeError(f"알 수 없는 가공 선택지: {action!r}")

    return Transition(next_state, gold, next_rate, reroll_delta)
