"""
아크 그리드 코어 최적화 / 젬 가공 시뮬레이터 상수 정의
모든 모듈이 이 파일의 값을 단일 소스로 사용함
"""

# === 아크 그리드 코어 상수들 ===
GRADES = ("HERO", "LEGEND", "RELIC", "ANCIENT")

CORE_LABEL = {
    "HERO": "영웅",
    "LEGEND": "전설",
    "RELIC": "유물",
    "ANCIENT": "고대",
}

# 코어 등급별 공급 의지력
CORE_SUPPLY = {
    "HERO": 7,
    "LEGEND": 11,
    "RELIC": 15,
    "ANCIENT": 17,
}

# 코어 효과 활성화 포인트 (오름차순)
CORE_THRESHOLDS = {
    "HERO": (10,),
    "LEGEND": (10, 14),
    "RELIC": (10, 14, 17, 18, 19, 20),
    "ANCIENT": (10, 14, 17, 18, 19, 20),
}

# 젬 4개 x 최대 5포인트
CORE_POINT_CAP = {grade: 20 for grade in GRADES}

# 등급별 선택 가능한 최대 목표 구간
TARGET_MAX_BY_GRADE = {
    "HERO": 10,
    "LEGEND": 14,
    "RELIC": 19,
    "ANCIENT": 20,
}

CORE_NAMES = ("해 코어", "달 코어", "별 코어")

MAX_GEMS_PER_CORE = 4

# 조합 열거 전 젬 풀 상한 (C(60,4) ~= 49만 조합)
MAX_POOL_SIZE = 60

# 점수 가중치 (사전식 우선순위)
SCORE_THRESHOLD_WEIGHT = 10_000_000
SCORE_POINT_WEIGHT = 10_000
SCORE_WILL_BASE = 5_000
SCORE_WILL_WEIGHT = 10

# === 옵션 / 역할 ===
OPTIONS = ("atk", "add", "boss", "brand", "ally_dmg", "ally_atk")

OPTION_LABELS = {
    "atk": "공격력",
    "add": "추가 피해",
    "boss": "보스 피해",
    "brand": "낙인력",
    "ally_dmg": "아군 피해 강화",
    "ally_atk": "아군 공격 강화",
}

ROLES = ("dealer", "support")

ROLE_KEYS = {
    "dealer": frozenset(("atk", "add", "boss")),
    "support": frozenset(("brand", "ally_dmg", "ally_atk")),
}

DEFAULT_WEIGHTS = {key: 1.0 for key in OPTIONS}

# 딜러 가중치: y ~= slope * level (원점 통과 회귀 추정)
DEALER_WEIGHTS = {
    "boss": 0.07870909,
    "add": 0.06018182,
    "atk": 0.03407273,
    "brand": 0.0,
    "ally_dmg": 0.0,
    "ally_atk": 0.0,
}

WEIGHT_PRESETS = {
    "default": DEFAULT_WEIGHTS,
    "dealer": DEALER_WEIGHTS,
}

# 레벨(0~5)별 효과 수치 (%)
LEVEL_CURVES = {
    "dealer": {
        "atk": (0.0, 0.029, 0.067, 0.105, 0.134, 0.172),
        "add": (0.0, 0.060, 0.119, 0.187, 0.241, 0.304),
        "boss": (0.0, 0.078, 0.156, 0.244, 0.315, 0.400),
    },
    "support": {
        "brand": (0.0, 0.167, 0.334, 0.500, 0.667, 0.834),
        "ally_dmg": (0.0, 0.050, 0.100, 0.150, 0.200, 0.250),
        "ally_atk": (0.0, 0.130, 0.260, 0.390, 0.520, 0.650),
    },
}

# === 젬 가공 상수들 ===
GEM_TYPES = {
    # 질서
    "질서-안정": {"base_need": 8, "attack": ("공격력", "추가 피해"), "support": ("낙인력", "아군 피해 강화")},
    "질서-견고": {"base_need": 9, "attack": ("공격력", "보스 피해"), "support": ("아군 피해 강화", "아군 공격 강화")},
    "질서-불변": {"base_need": 10, "attack": ("추가 피해", "보스 피해"), "support": ("낙인력", "아군 공격 강화")},
    # 혼돈
    "혼돈-침식": {"base_need": 8, "attack": ("공격력", "추가 피해"), "support": ("낙인력", "아군 피해 강화")},
    "혼돈-왜곡": {"base_need": 9, "attack": ("공격력", "보스 피해"), "support": ("아군 피해 강화", "아군 공격 강화")},
    "혼돈-붕괴": {"base_need": 10, "attack": ("추가 피해", "보스 피해"), "support": ("낙인력", "아군 공격 강화")},
}

RARITIES = ("고급", "희귀", "영웅")

# 고급 젬: 5회 가공, 0회 리롤 / 희귀 젬: 7회, 1회 / 영웅 젬: 9회, 2회
RARITY_ATTEMPTS = {"고급": 5, "희귀": 7, "영웅": 9}
RARITY_BASE_REROLLS = {"고급": 0, "희귀": 1, "영웅": 2}

MIN_STAT = 0
MAX_STAT = 5

PROCESSING_COST = 900  # 기본 가공 비용 (골드)

# 효과 이름 와일드카드
ANY_NAME = "상관없음"
WILDCARD_NAMES = frozenset((ANY_NAME, "any"))

# 등급 구간 (eff + pts + aLvl + bLvl)
LEGEND_MIN = 4
LEGEND_MAX = 15
RELIC_MIN = 16
RELIC_MAX = 18
ANCIENT_MIN = 19

GRADE_BELOW = "등급 미만"
GRADE_LEGEND = "전설"
GRADE_RELIC = "유물"
GRADE_ANCIENT = "고대"

# 가공 선택지 가중치 (4개 선택지 시스템)
STAT_DELTA_WEIGHTS = {
    1: 11.65,
    2: 4.4,
    3: 1.75,
    4: 0.45,
    -1: 3.0,
}
CHANGE_EFFECT_WEIGHT = 3.25
COST_FLAG_WEIGHT = 1.75
REROLL_PLUS_WEIGHTS = {1: 2.5, 2: 0.75}
HOLD_WEIGHT = 1.75

OFFERED_ACTIONS = 4

# === Monte Carlo 설정 ===
# (최소 시행 수, 배치 크기, 목표 CI 반폭)
TRIAL_SCHEDULE = (
    (50_000, 1000, 0.002),
    (10_000, 800, 0.0035),
    (5_000, 600, 0.005),
    (0, 400, 0.007),
)
DEFAULT_MAX_TRIALS = 50_000
Z_95 = 1.96

# 리롤 룩어헤드
REROLL_SAMPLES = 16
REROLL_TAU = 0.0025
ADVISOR_MAX_TRIALS = 8000
ADVISOR_EPSILON = 0.006
ADVISOR_BATCH = 500

# 시드 오프셋 (호출 지점별 충돌 방지)
SEED_OFFSET_STOP = 101
SEED_OFFSET_RUN = 103
SEED_OFFSET_NOW = 7
SEED_OFFSET_REROLL_BASE = 1000
SEED_OFFSET_REROLL_STEP = 31
SEED_OFFSET_REROLL_EVAL = 17

PERCENTILES = (10, 20, 30, 40, 50, 60, 70, 80, 90)
