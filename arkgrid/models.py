"""
코어 최적화 / 젬 가공 시뮬레이터 핵심 타입 정의
"""

import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .constants import DEFAULT_MAX_TRIALS, TRIAL_SCHEDULE

# === 모드 / 정책 문자열 ===
ANY_ONE = "ANY_ONE"
BOTH = "BOTH"
AB_MODES = (ANY_ONE, BOTH)

STOP_ON_SUCCESS = "STOP_ON_SUCCESS"
RUN_TO_END = "RUN_TO_END"
POLICIES = (STOP_ON_SUCCESS, RUN_TO_END)

POSITION_ANY = "any"
POSITION_ATTACK = "attack"
POSITION_SUPPORT = "support"
POSITIONS = (POSITION_ANY, POSITION_ATTACK, POSITION_SUPPORT)

# UI에서 넘어오는 한글 표기 허용
_POSITION_ALIASES = {
    "상관 없음": POSITION_ANY,
    "상관없음": POSITION_ANY,
    "딜러": POSITION_ATTACK,
    "공격형": POSITION_ATTACK,
    "서포터": POSITION_SUPPORT,
    "지원형": POSITION_SUPPORT,
}


def normalize_position(position: Optional[str]) -> str:
    """포지션 표기를 any/attack/support 중 하나로 정규화"""
    if position is None:
        return POSITION_ANY
    if position in POSITIONS:
        return position
    if position in _POSITION_ALIASES:
        return _POSITION_ALIASES[position]
    raise ValueError(f"알 수 없는 포지션: {position!r}")


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


# === 코어 최적화 타입들 ===
@dataclass(frozen=True)
class Gem:
    id: str
    will: Optional[int]
    point: Optional[int]
    o1k: str
    o1v: Optional[int]
    o2k: str
    o2v: Optional[int]

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Gem":
        """OCR/JSON 레코드({will, point, o1k, o1v, o2k, o2v})에서 젬 생성"""
        return cls(
            id=str(record.get("id") or uuid.uuid4().hex[:8]),
            will=_as_int(record.get("will")),
            point=_as_int(record.get("point")),
            o1k=record["o1k"],
            o1v=_as_int(record.get("o1v")),
            o2k=record["o2k"],
            o2v=_as_int(record.get("o2v")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CoreDefinition:
    id: str
    name: str
    grade: str
    min_threshold: Optional[int] = None
    enforce_min: bool = False

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CoreDefinition":
        return cls(
            id=str(record.get("id") or uuid.uuid4().hex[:8]),
            name=record.get("name", ""),
            grade=record["grade"],
            min_threshold=_as_int(record.get("minThreshold", record.get("min_threshold"))),
            enforce_min=bool(record.get("enforceMin", record.get("enforce_min", False))),
        )


@dataclass(frozen=True)
class ComboInfo:
    gems: Tuple[Gem, ...]
    total_will: int
    total_point: int
    thr: Tuple[int, ...]
    role_sum: float
    score: float

    @classmethod
    def empty(cls) -> "ComboInfo":
        """배정 가능한 조합이 없을 때의 결과"""
        return cls(gems=(), total_will=0, total_point=0, thr=(), role_sum=0, score=0)

    @property
    def is_empty(self) -> bool:
        return len(self.gems) == 0

    @property
    def max_threshold(self) -> int:
        return max(self.thr) if self.thr else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "list": [g.to_dict() for g in self.gems],
            "totalWill": self.total_will,
            "totalPoint": self.total_point,
            "thr": list(self.thr),
            "roleSum": self.role_sum,
            "score": self.score,
        }


# === 젬 가공 타입들 ===
@dataclass(frozen=True)
class RefinementState:
    eff: int
    pts: int
    a_name: str
    a_lvl: int
    b_name: str
    b_lvl: int

    def total(self) -> int:
        return self.eff + self.pts + self.a_lvl + self.b_lvl


@dataclass(frozen=True)
class RefinementSession:
    attempts_left: int
    rerolls: int
    unlocked: bool
    cost_add_rate: int
    gold: int
    state: RefinementState


@dataclass(frozen=True)
class TargetSpec:
    eff: int
    pts: int
    a_lvl: int = 0
    b_lvl: int = 0
    a_name: Optional[str] = None
    b_name: Optional[str] = None


@dataclass(frozen=True)
class SimulationOptions:
    max_trials: int = DEFAULT_MAX_TRIALS
    epsilon: float = 0.002
    batch: int = 1000

    @classmethod
    def for_budget(cls, max_trials: int) -> "SimulationOptions":
        """시행 예산이 클수록 배치는 크게, 목표 CI 반폭은 좁게"""
        for min_trials, batch, epsilon in TRIAL_SCHEDULE:
            if max_trials >= min_trials:
                return cls(max_trials=max_trials, epsilon=epsilon, batch=batch)
        raise ValueError(f"잘못된 시행 수: {max_trials}")


@dataclass(frozen=True)
class ConfidenceInterval:
    low: float = 0.0
    high: float = 0.0
    half_width: float = 0.0


@dataclass
class SimulationResult:
    success_prob: float
    legend_prob: float
    relic_prob: float
    ancient_prob: float
    expected_gold: float
    trials_used: int
    ci: ConfidenceInterval
    gold_percentiles: Dict[int, float] = field(default_factory=dict)
    history: List[Tuple[int, float, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successProb": self.success_prob,
            "legendProb": self.legend_prob,
            "relicProb": self.relic_prob,
            "ancientProb": self.ancient_prob,
            "expectedGold": self.expected_gold,
            "trialsUsed": self.trials_used,
            "ci": {"low": self.ci.low, "high": self.ci.high, "halfWidth": self.ci.half_width},
            "goldPercentiles": dict(self.gold_percentiles),
        }


@dataclass(frozen=True)
class RerollAdvice:
    should_reroll: bool
    reason: str
    now_prob: Optional[float] = None
    reroll_prob: Optional[float] = None
    delta: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shouldReroll": self.should_reroll,
            "reason": self.reason,
            "nowProb": self.now_prob,
            "rerollProb": self.reroll_prob,
            "delta": self.delta,
        }
