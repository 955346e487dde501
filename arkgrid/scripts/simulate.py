#!/usr/bin/env python3
"""
젬 가공 성공 확률 / 등급 분포 / 기대 골드 시뮬레이션 스크립트
"""

import argparse
import logging
import os
import time
from dataclasses import replace

from arkgrid.advisor import advise_reroll
from arkgrid.constants import GEM_TYPES, RARITIES, SEED_OFFSET_RUN, SEED_OFFSET_STOP
from arkgrid.models import AB_MODES, BOTH, POSITIONS, RUN_TO_END, STOP_ON_SUCCESS, RefinementState, SimulationOptions, TargetSpec
from arkgrid.processing import action_from_key
from arkgrid.report import plot_convergence, plot_grade_distribution
from arkgrid.rng import canonical_json
from arkgrid.session import start_session
from arkgrid.simulator import OFFICIAL, STRATEGIES, eval_seed, evaluate_both, evaluate_refinement
from arkgrid.store import ResultStore, cached_evaluate
from arkgrid.targets import grade_of, validate_position_constraint, validate_state


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='젬 가공 Monte Carlo 시뮬레이션')
    parser.add_argument('--gem', default='질서-안정', choices=list(GEM_TYPES), help='젬 타입 (기본값: 질서-안정)')
    parser.add_argument('--position', default='any', choices=list(POSITIONS), help='포지션 필터')
    parser.add_argument('--rarity', default='영웅', choices=list(RARITIES), help='젬 등급 (가공/리롤 횟수 결정)')
    parser.add_argument('--ab-mode', default=BOTH, choices=list(AB_MODES))

    # 현재 상태
    parser.add_argument('--eff', type=int, default=1, help='현재 의지력 효율')
    parser.add_argument('--pts', type=int, default=1, help='현재 포인트')
    parser.add_argument('--a-name', default=None, help='A 효과 이름 (기본: 공격형 첫 효과)')
    parser.add_argument('--a-lvl', type=int, default=1)
    parser.add_argument('--b-name', default=None, help='B 효과 이름 (기본: 지원형 첫 효과)')
    parser.add_argument('--b-lvl', type=int, default=1)

    # 진행 중인 세션 (지정하지 않으면 등급 기본값)
    parser.add_argument('--attempts-left', type=int, default=None)
    parser.add_argument('--rerolls', type=int, default=None)
    parser.add_argument('--cost-rate', type=int, default=0, choices=[-1, 0, 1])
    parser.add_argument('--unlocked', action='store_true', help='이미 1회 이상 가공한 상태')

    # 목표
    parser.add_argument('--target-eff', type=int, default=4)
    parser.add_argument('--target-pts', type=int, default=4)
    parser.add_argument('--target-a-lvl', type=int, default=0)
    parser.add_argument('--target-b-lvl', type=int, default=0)
    parser.add_argument('--target-a-name', default='상관없음')
    parser.add_argument('--target-b-name', default='상관없음')

    parser.add_argument('--trials', type=int, default=50000, help='최대 시행 수 (기본값: 50000)')
    parser.add_argument('--seed', type=int, default=None, help='시드 직접 지정 (기본: 입력에서 유도)')
    parser.add_argument('--strategy', default=OFFICIAL, choices=list(STRATEGIES))
    parser.add_argument('--db', default=None, help='결과 캐시 SQLite 경로')
    parser.add_argument('--plot', default=None, help='차트 저장 디렉터리')
    parser.add_argument('--advise', nargs=4, metavar='ACTION', default=None,
                        help='현재 제시된 4개 선택지 key (예: eff_+1 pts_+1 a_lvl_+1 hold)')
    parser.add_argument('--verbose', action='store_true')
    return parser


def print_result(title, result):
    print(f"\n📊 {title}")
    print(f"  성공 확률: {result.success_prob * 100:.2f}% "
          f"(95% CI {result.ci.low * 100:.2f}% ~ {result.ci.high * 100:.2f}%, ±{result.ci.half_width * 100:.2f}%)")
    print(f"  등급 분포: 전설 {result.legend_prob * 100:.2f}% / 유물 {result.relic_prob * 100:.2f}% / "
          f"고대 {result.ancient_prob * 100:.2f}%")
    print(f"  기대 골드: {result.expected_gold:,.0f} (시행 {result.trials_used:,}회)")
    pct = result.gold_percentiles
    if pct:
        print(f"  골드 분포: p10={pct.get(10, 0):,.0f} / p50={pct.get(50, 0):,.0f} / p90={pct.get(90, 0):,.0f}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    gem_type = GEM_TYPES[args.gem]
    state = RefinementState(
        eff=args.eff, pts=args.pts,
        a_name=args.a_name or gem_type['attack'][0], a_lvl=args.a_lvl,
        b_name=args.b_name or gem_type['support'][0], b_lvl=args.b_lvl,
    )
    validate_state(state, args.gem)
    if not validate_position_constraint(args.position, state.a_name, state.b_name, args.gem):
        print(f"⚠️ 현재 효과 중 {args.position} 포지션에 해당하는 효과가 없습니다.")

    overrides = {"unlocked": args.unlocked, "cost_add_rate": args.cost_rate}
    if args.attempts_left is not None:
        overrides["attempts_left"] = args.attempts_left
    if args.rerolls is not None:
        overrides["rerolls"] = args.rerolls
    session = replace(start_session(args.rarity, state), **overrides)
    target = TargetSpec(
        eff=args.target_eff, pts=args.target_pts,
        a_lvl=args.target_a_lvl, b_lvl=args.target_b_lvl,
        a_name=args.target_a_name, b_name=args.target_b_name,
    )
    options = SimulationOptions.for_budget(args.trials)

    print(f"💎 {args.gem} ({args.rarity}) / 포지션 {args.position} / {args.ab_mode}")
    print(f"  현재: 의지력 효율 {state.eff}, 포인트 {state.pts}, "
          f"{state.a_name} Lv.{state.a_lvl}, {state.b_name} Lv.{state.b_lvl} "
          f"(합계 {state.total()}, {grade_of(state.total())})")
    print(f"  남은 가공 {session.attempts_left}회 / 리롤 {session.rerolls}회")
    print(f"🎯 목표: 의지력 효율 ≥{target.eff}, 포인트 ≥{target.pts}, "
          f"A {target.a_name} Lv.{target.a_lvl}, B {target.b_name} Lv.{target.b_lvl}")
    print(f"🎲 최대 {options.max_trials:,}회 (배치 {options.batch}, 목표 CI ±{options.epsilon})")

    start_time = time.time()
    if args.db is None and args.seed is None:
        stop, run = evaluate_both(args.gem, args.position, args.rarity, args.ab_mode, session, target,
                                  options=options, strategy=args.strategy)
    else:
        store = None
        if args.db:
            store = ResultStore(args.db)
            store.create_schema()
        seed_base = args.seed if args.seed is not None else eval_seed(
            args.gem, args.position, args.rarity, args.ab_mode, session, target, strategy=args.strategy)
        results = []
        for policy, offset in ((STOP_ON_SUCCESS, SEED_OFFSET_STOP), (RUN_TO_END, SEED_OFFSET_RUN)):
            seed = seed_base + offset
            key = canonical_json({"gem": args.gem, "pos": args.position, "abMode": args.ab_mode,
                                  "manual": session, "tgt": target, "policy": policy, "seed": seed,
                                  "opts": options, "strategy": args.strategy})
            results.append(cached_evaluate(store, key, lambda policy=policy, seed=seed: evaluate_refinement(
                args.gem, args.position, args.ab_mode, state, target, policy,
                session.attempts_left, session.rerolls, session.cost_add_rate, session.unlocked,
                seed=seed, options=options, strategy=args.strategy,
            )))
        stop, run = results
    elapsed = time.time() - start_time

    print_result("STOP_ON_SUCCESS (목표 달성 시 중단)", stop)
    print_result("RUN_TO_END (끝까지 가공)", run)
    print(f"\n✅ 계산 완료 ({elapsed:.1f}초)")

    if args.advise:
        current_four = [action_from_key(k) for k in args.advise]
        print("\n🔄 리롤 판단 계산 중...")
        advice = advise_reroll(args.gem, args.position, args.ab_mode, session, target, current_four)
        print(f"  {'리롤 추천' if advice.should_reroll else '리롤 비추천'}: {advice.reason}")

    if args.plot:
        os.makedirs(args.plot, exist_ok=True)
        grade_path = plot_grade_distribution(stop, run, os.path.join(args.plot, 'grade_distribution.png'))
        conv_path = plot_convergence(stop, os.path.join(args.plot, 'convergence_stop.png'))
        print(f"🖼️ 차트 저장: {grade_path}, {conv_path}")


if __name__ == "__main__":
    main()
