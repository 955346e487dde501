"""
시뮬레이션 결과 SQLite 캐시

같은 입력 스냅샷(시드 키)은 같은 결과를 내므로, 한 번 계산한 결과를 키로 저장해 재사용한다.
"""

import logging
import sqlite3
from typing import Callable, Optional

from .models import ConfidenceInterval, SimulationResult

logger = logging.getLogger(__name__)


class ResultStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def create_schema(self) -> None:
        """SQLite 데이터베이스 스키마 생성"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        # 정책별 시뮬레이션 결과
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS simulation_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                result_key TEXT NOT NULL UNIQUE,
                success_prob REAL NOT NULL,
                legend_prob REAL NOT NULL,
                relic_prob REAL NOT NULL,
                ancient_prob REAL NOT NULL,
                expected_gold REAL NOT NULL,
                trials_used INTEGER NOT NULL,
                ci_low REAL NOT NULL,
                ci_high REAL NOT NULL,
                ci_half_width REAL NOT NULL
            )
        """)

        # 시행 골드 분포 (percentile 데이터)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS gold_percentiles (
                result_id INTEGER NOT NULL,
                percentile INTEGER NOT NULL,
                value REAL NOT NULL,
                FOREIGN KEY (result_id) REFERENCES simulation_results (id),
                PRIMARY KEY (result_id, percentile)
            )
        """)

        # 배치별 수렴 기록
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS convergence_history (
                result_id INTEGER NOT NULL,
                trials INTEGER NOT NULL,
                success_prob REAL NOT NULL,
                half_width REAL NOT NULL,
                FOREIGN KEY (result_id) REFERENCES simulation_results (id),
                PRIMARY KEY (result_id, trials)
            )
        """)

        conn.commit()
        conn.close()
        logger.info("결과 DB 스키마 준비 완료: %s", self.db_path)

    def get(self, key: str) -> Optional[SimulationResult]:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        try:
            cursor.execute("""
                SELECT id, success_prob, legend_prob, relic_prob, ancient_prob, expected_gold,
                       trials_used, ci_low, ci_high, ci_half_width
                FROM simulation_results WHERE result_key = ?
            """, (key,))
            row = cursor.fetchone()
            if row is None:
                return None

            result_id = row[0]
            cursor.execute(
                "SELECT percentile, value FROM gold_percentiles WHERE result_id = ? ORDER BY percentile",
                (result_id,),
            )
            percentiles = {pct: value for pct, value in cursor.fetchall()}
            cursor.execute(
                "SELECT trials, success_prob, half_width FROM convergence_history WHERE result_id = ? ORDER BY trials",
                (result_id,),
            )
            history = [tuple(r) for r in cursor.fetchall()]
        finally:
            conn.close()

        return SimulationResult(
            success_prob=row[1],
            legend_prob=row[2],
            relic_prob=row[3],
            ancient_prob=row[4],
            expected_gold=row[5],
            trials_used=row[6],
            ci=ConfidenceInterval(low=row[7], high=row[8], half_width=row[9]),
            gold_percentiles=percentiles,
            history=history,
        )

    def put(self, key: str, result: SimulationResult) -> None:
        # 여러 워커 프로세스가 같은 파일을 쓰므로 조회~삽입을 쓰기 잠금 트랜잭션 하나로 묶음
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            # 같은 키는 덮어쓰기 (하위 테이블도 함께 교체)
            cursor.execute("SELECT id FROM simulation_results WHERE result_key = ?", (key,))
            old = cursor.fetchone()
            if old is not None:
                cursor.execute("DELETE FROM gold_percentiles WHERE result_id = ?", (old[0],))
                cursor.execute("DELETE FROM convergence_history WHERE result_id = ?", (old[0],))
                cursor.execute("DELETE FROM simulation_results WHERE id = ?", (old[0],))

            cursor.execute("""
                INSERT INTO simulation_results (
                    result_key, success_prob, legend_prob, relic_prob, ancient_prob, expected_gold,
                    trials_used, ci_low, ci_high, ci_half_width
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                key, result.success_prob, result.legend_prob, result.relic_prob, result.ancient_prob,
                result.expected_gold, result.trials_used, result.ci.low, result.ci.high, result.ci.half_width,
            ))
            result_id = cursor.lastrowid

            cursor.executemany(
                "INSERT INTO gold_percentiles (result_id, percentile, value) VALUES (?, ?, ?)",
                [(result_id, int(pct), float(value)) for pct, value in result.gold_percentiles.items()],
            )
            cursor.executemany(
                "INSERT INTO convergence_history (result_id, trials, success_prob, half_width) VALUES (?, ?, ?, ?)",
                [(result_id, int(n), float(p), float(hw)) for n, p, hw in result.history],
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def cached_evaluate(store: Optional[ResultStore], key: str, fn: Callable[[], SimulationResult]) -> SimulationResult:
    """캐시에 있으면 꺼내 쓰고, 없으면 계산 후 저장"""
    if store is None:
        return fn()
    cached = store.get(key)
    if cached is not None:
        logger.debug("결과 캐시 적중: %s", key[:60])
        return cached
    result = fn()
    store.put(key, result)
    return result
