"""Tests for the headless result charts."""
from __future__ import annotations

import pytest

from arkgrid.models import ConfidenceInterval, SimulationResult
from arkgrid.report import grade_distribution, plot_convergence, plot_grade_distribution


@pytest.fixture(scope="module")
def result() -> SimulationResult:
    return SimulationResult(
        success_prob=0.4, legend_prob=0.6, relic_prob=0.3, ancient_prob=0.05, expected_gold=5400.0,
        trials_used=1500, ci=ConfidenceInterval(0.37, 0.43, 0.03),
        history=[(500, 0.38, 0.04), (1000, 0.41, 0.03), (1500, 0.4, 0.025)],
    )


def test_grade_distribution_sums_to_one(result):
    dist = grade_distribution(result)
    assert dist[0] == pytest.approx(0.05)
    assert sum(dist) == pytest.approx(1.0)


def test_plots_written(tmp_path, result):
    grades = plot_grade_distribution(result, result, str(tmp_path / "grades.png"))
    convergence = plot_convergence(result, str(tmp_path / "convergence.png"))
    for path in (grades, convergence):
        with open(path, "rb") as f:
            assert f.read(8) == b"\x89PNG\r\n\x1a\n"


def test_convergence_requires_history(tmp_path, result):
    empty = SimulationResult(0.0, 0.0, 0.0, 0.0, 0.0, 0, ConfidenceInterval())
    with pytest.raises(ValueError):
        plot_convergence(empty, str(tmp_path / "none.png"))
