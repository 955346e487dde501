#!/usr/bin/env python3
"""
아크 그리드 코어별 젬 배치 스크립트

입력 JSON 형식:
{
  "role": "dealer",
  "weights": {"atk": 1, "add": 1, "boss": 1},
  "cores": [{"id": "sun", "name": "해 코어", "grade": "RELIC", "minThreshold": 17, "enforceMin": true}, ...],
  "gems": [{"id": "g1", "will": 4, "point": 5, "o1k": "atk", "o1v": 3, "o2k": "boss", "o2v": 2}, ...]
}
"""

import argparse
import json
import logging
import time

from arkgrid.constants import CORE_LABEL, CORE_SUPPLY, OPTION_LABELS, ROLES, WEIGHT_PRESETS
from arkgrid.models import CoreDefinition, Gem
from arkgrid.optimizer import allocate_by_priority


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='코어 우선순위 기반 젬 배치')
    parser.add_argument('input', help='입력 JSON 파일')
    parser.add_argument('--role', default=None, choices=list(ROLES), help='역할 (JSON 값보다 우선)')
    parser.add_argument('--preset', default=None, choices=list(WEIGHT_PRESETS), help='가중치 프리셋')
    parser.add_argument('--curve', action='store_true', help='레벨별 효과표로 역할 점수 계산')
    parser.add_argument('--output', default=None, help='결과 JSON 저장 경로')
    parser.add_argument('--verbose', action='store_true')
    return parser


def describe_gem(gem: Gem) -> str:
    o1 = OPTION_LABELS.get(gem.o1k, gem.o1k)
    o2 = OPTION_LABELS.get(gem.o2k, gem.o2k)
    return f"[{gem.id}] 의지력 {gem.will} / 포인트 {gem.point} / {o1} {gem.o1v} / {o2} {gem.o2v}"


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    with open(args.input, 'r', encoding='utf-8') as f:
        data = json.load(f)

    cores = [CoreDefinition.from_record(c) for c in data['cores']]
    gems = [Gem.from_record(g) for g in data['gems']]
    role = args.role or data.get('role')
    weights = WEIGHT_PRESETS[args.preset] if args.preset else data.get('weights')

    print(f"🧩 코어 {len(cores)}개 / 젬 {len(gems)}개 / 역할 {role or '없음'}")

    def on_progress(done, total):
        print(f"진행: {done}/{total} 코어 배치 완료")

    start_time = time.time()
    picks = allocate_by_priority(cores, gems, role, weights, curve=args.curve, on_progress=on_progress)
    elapsed = time.time() - start_time

    for core, combo in zip(cores, picks):
        title = f"{core.name or core.id} ({CORE_LABEL[core.grade]}, 공급 의지력 {CORE_SUPPLY[core.grade]})"
        if combo.is_empty:
            print(f"\n⚠️ {title}: 조건을 만족하는 조합 없음")
            continue
        thr = ', '.join(f"{t}P" for t in combo.thr)
        print(f"\n✅ {title}")
        print(f"  포인트 {combo.total_point} / 의지력 {combo.total_will} / 활성 구간 [{thr}] / 역할 점수 {combo.role_sum:.3f}")
        for gem in combo.gems:
            print(f"  - {describe_gem(gem)}")

    print(f"\n⏱️ 소요 시간: {elapsed:.2f}초")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump([combo.to_dict() for combo in picks], f, ensure_ascii=False, indent=2)
        print(f"💾 결과 저장 완료: {args.output}")


if __name__ == "__main__":
    main()
