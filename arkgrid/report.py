"""
시뮬레이션 결과 차트 (headless, PNG 저장)
"""

import matplotlib

matplotlib.use("Agg")  # GUI 없이 이미지만 생성

import matplotlib.pyplot as plt
import numpy as np

from .models import SimulationResult


def grade_distribution(result: SimulationResult):
    """(등급 미만, 전설, 유물, 고대) 비율"""
    below = max(0.0, 1.0 - result.legend_prob - result.relic_prob - result.ancient_prob)
    return [below, result.legend_prob, result.relic_prob, result.ancient_prob]


def plot_grade_distribution(stop: SimulationResult, run: SimulationResult, path: str) -> str:
    """두 정책의 최종 등급 분포 막대 그래프"""
    # 폰트에 한글이 없을 수 있어 축 라벨은 영문
    labels = ["Below", "Legend", "Relic", "Ancient"]
    x = np.arange(len(labels))
    width = 0.38

    fig, ax = plt.subplots(figsize=(8, 5), dpi=100)
    ax.bar(x - width / 2, grade_distribution(stop), width, label=f"STOP_ON_SUCCESS (n={stop.trials_used})", color="tab:blue")
    ax.bar(x + width / 2, grade_distribution(run), width, label=f"RUN_TO_END (n={run.trials_used})", color="tab:orange")
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_ylim(0, 1)
    ax.set_ylabel("Probability")
    ax.set_title("Final Grade Distribution")
    ax.legend()

    plt.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path


def plot_convergence(result: SimulationResult, path: str) -> str:
    """배치별 성공 확률과 95% CI 띠"""
    if not result.history:
        raise ValueError("수렴 기록이 없는 결과")
    trials = np.array([h[0] for h in result.history])
    probs = np.array([h[1] for h in result.history])
    half_widths = np.array([h[2] for h in result.history])

    fig, ax = plt.subplots(figsize=(8, 5), dpi=100)
    ax.plot(trials, probs, color="green", marker="o", markersize=3, label="success probability")
    ax.fill_between(trials, np.clip(probs - half_widths, 0, 1), np.clip(probs + half_widths, 0, 1),
                    color="green", alpha=0.2, label="95% CI")
    ax.set_xlabel("Trials")
    ax.set_ylabel("Success Probability")
    ax.set_title(f"Monte Carlo Convergence (final ±{result.ci.half_width:.4f})")
    ax.legend()

    plt.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
