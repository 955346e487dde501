#!/usr/bin/env python3
"""
4개 선택지 조합 확률 검증 스크립트
정확한 조합 확률(four_set_probability)과 sample_four 표본 빈도를 비교
"""

import argparse
from collections import Counter
from itertools import combinations

from arkgrid.constants import GEM_TYPES, OFFERED_ACTIONS
from arkgrid.models import RefinementState
from arkgrid.processing import build_weighted_items, four_set_probability, sample_four
from arkgrid.rng import XorShift32


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='4개 선택지 조합 확률 검증')
    parser.add_argument('--gem', default='질서-안정', choices=list(GEM_TYPES))
    parser.add_argument('--state', type=int, nargs=4, default=[1, 1, 1, 1], metavar=('EFF', 'PTS', 'A', 'B'),
                        help='현재 수치 (기본값: 1 1 1 1)')
    parser.add_argument('--attempts-left', type=int, default=9)
    parser.add_argument('--cost-rate', type=int, default=0, choices=[-1, 0, 1])
    parser.add_argument('--samples', type=int, default=200000)
    parser.add_argument('--seed', type=int, default=12345)
    parser.add_argument('--top', type=int, default=10)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    gem_type = GEM_TYPES[args.gem]
    eff, pts, a_lvl, b_lvl = args.state
    state = RefinementState(eff=eff, pts=pts, a_name=gem_type['attack'][0], a_lvl=a_lvl,
                            b_name=gem_type['support'][0], b_lvl=b_lvl)

    items = build_weighted_items(state, args.attempts_left, args.gem, args.cost_rate)
    weights = [item.weight for item in items]

    print("=" * 60)
    print("📊 4개 선택지 조합 확률 검증")
    print("=" * 60)
    print(f"선택지 수: {len(items)} / 총 가중치: {sum(weights):.4f}")
    for i, item in enumerate(items):
        print(f"  [{i:2d}] {item.action.key:12s} {item.action.label(state):20s} weight={item.weight:.2f}")

    if len(items) < OFFERED_ACTIONS:
        print("⚠️ 선택지가 4개 미만이므로 조합을 만들 수 없습니다.")
        return

    exact = {}
    for combo in combinations(range(len(items)), OFFERED_ACTIONS):
        exact[frozenset(combo)] = four_set_probability(list(combo), weights)
    print(f"\n전체 조합 확률 합계: {sum(exact.values()):.10f} (이론적으로 1이어야 함)")

    index_of = {item.action: i for i, item in enumerate(items)}
    rng = XorShift32(args.seed)
    counts = Counter()
    for _ in range(args.samples):
        offered = sample_four(items, rng)
        counts[frozenset(index_of[a] for a in offered)] += 1

    print(f"\n상위 {args.top}개 조합 (정확 확률 vs 표본 {args.samples:,}회):")
    max_diff = 0.0
    for rank, (combo, prob) in enumerate(sorted(exact.items(), key=lambda kv: kv[1], reverse=True)[:args.top], 1):
        observed = counts[combo] / args.samples
        max_diff = max(max_diff, abs(observed - prob))
        keys = ' | '.join(items[i].action.key for i in sorted(combo))
        print(f"  {rank:2d}. P={prob * 100:.4f}% / 표본 {observed * 100:.4f}% => {keys}")

    print(f"\n✅ 상위 조합 최대 오차: {max_diff * 100:.4f}%p")


if __name__ == "__main__":
    main()
