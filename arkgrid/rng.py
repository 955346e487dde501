"""
결정적 시드 / xorshift32 난수 생성기

같은 입력 스냅샷이면 같은 시드가 나오므로 재계산 결과가 항상 동일하다.
"""

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Sequence, TypeVar

T = TypeVar("T")

FNV_OFFSET = 2166136261
FNV_PRIME = 16777619
MASK32 = 0xFFFFFFFF
TWO_POW_32 = 4294967296


def hash32(text: str) -> int:
    """32비트 FNV-1a (UTF-16 코드 유닛 단위)"""
    h = FNV_OFFSET
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * FNV_PRIME) & MASK32
    return h


def _to_plain(obj: Any) -> Any:
    # 가공 선택지는 key 문자열로, 그 외 dataclass는 dict로
    if is_dataclass(obj) and not isinstance(obj, type):
        key = getattr(obj, "key", None)
        if isinstance(key, str):
            return key
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"시드 스냅샷에 넣을 수 없는 값: {type(obj).__name__}")


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_to_plain)


def make_deterministic_seed(obj: Any) -> int:
    """입력 스냅샷 -> 시드 (0이면 1)"""
    return hash32(canonical_json(obj)) or 1


class XorShift32:
    """xorshift32 (13/17/5). 시드는 2^32로 나눈 나머지, 0은 1로 대체"""

    def __init__(self, seed: int):
        self.state = (int(seed) & MASK32) or 1

    def next_u32(self) -> int:
        s = self.state
        s ^= (s << 13) & MASK32
        s ^= s >> 17
        s ^= (s << 5) & MASK32
        self.state = s
        return s

    def random(self) -> float:
        """[0, 1) 균등 난수"""
        return self.next_u32() / TWO_POW_32

    def randrange(self, n: int) -> int:
        if n <= 0:
            raise ValueError(f"randrange 범위가 비어 있음: {n}")
        return int(self.random() * n)

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise IndexError("빈 시퀀스에서 선택할 수 없음")
        return seq[self.randrange(len(seq))]
