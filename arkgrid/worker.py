"""
백그라운드 계산 워커

요청/응답 메시지 형식
- run       -> result         : 코어 우선순위 배치
- EVAL      -> EVAL_RESULT    : 단일 정책 가공 확률
- REROLL_EV -> REROLL_RESULT  : 리롤 룩어헤드 추천
진행 중에는 progress 메시지(done, total, label)를, 실패 시 error 메시지를 보낸다.

BackgroundWorker는 슬롯(화면 영역)별 세대 번호를 관리한다. 같은 슬롯에 새 요청이
들어오면 이전 요청은 낡은 세대가 되어 진행/결과 메시지가 모두 버려지고,
워커 프로세스 안에서도 다음 배치 경계에서 중단된다.
"""

import logging
import multiprocessing as mp
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .advisor import advise_reroll
from .models import (
    BOTH,
    RUN_TO_END,
    CoreDefinition,
    Gem,
    RefinementSession,
    RefinementState,
    SimulationOptions,
    TargetSpec,
)
from .optimizer import allocate_by_priority
from .processing import action_from_key
from .rng import canonical_json
from .simulator import OFFICIAL, SimulationCancelled, evaluate_refinement
from .store import ResultStore, cached_evaluate

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
Emit = Callable[[Message], None]


# === 메시지 payload -> 타입 변환 ===
def state_from_record(record: Dict[str, Any]) -> RefinementState:
    return RefinementState(
        eff=int(record["eff"]),
        pts=int(record["pts"]),
        a_name=record.get("aName", record.get("a_name")),
        a_lvl=int(record.get("aLvl", record.get("a_lvl", 0))),
        b_name=record.get("bName", record.get("b_name")),
        b_lvl=int(record.get("bLvl", record.get("b_lvl", 0))),
    )


def target_from_record(record: Dict[str, Any]) -> TargetSpec:
    return TargetSpec(
        eff=int(record.get("eff", 0)),
        pts=int(record.get("pts", 0)),
        a_lvl=int(record.get("aLvl", record.get("a_lvl", 0))),
        b_lvl=int(record.get("bLvl", record.get("b_lvl", 0))),
        a_name=record.get("aName", record.get("a_name")),
        b_name=record.get("bName", record.get("b_name")),
    )


def session_from_record(record: Dict[str, Any]) -> RefinementSession:
    return RefinementSession(
        attempts_left=int(record["attemptsLeft"]),
        rerolls=int(record["rerolls"]),
        unlocked=bool(record.get("unlocked", False)),
        cost_add_rate=int(record.get("costAddRate", 0)),
        gold=int(record.get("gold", 0)),
        state=state_from_record(record["state"]),
    )


def options_from_record(record: Optional[Dict[str, Any]]) -> Optional[SimulationOptions]:
    if not record:
        return None
    if "epsilon" in record or "batch" in record:
        base = SimulationOptions()
        return SimulationOptions(
            max_trials=int(record.get("maxTrials", base.max_trials)),
            epsilon=float(record.get("epsilon", base.epsilon)),
            batch=int(record.get("batch", base.batch)),
        )
    return SimulationOptions.for_budget(int(record["maxTrials"]))


# === 요청별 처리 ===
def _handle_run(job_id, payload: Dict[str, Any], emit: Emit) -> Message:
    cores = [CoreDefinition.from_record(c) for c in payload["cores"]]
    gems = [Gem.from_record(g) for g in payload["gems"]]

    def on_progress(done, total):
        emit({"type": "progress", "jobId": job_id, "done": done, "total": total, "label": "코어 배치"})

    picks = allocate_by_priority(cores, gems, payload.get("role"), payload.get("weights"),
                                 curve=bool(payload.get("curve", False)), on_progress=on_progress)
    return {"type": "result", "jobId": job_id, "result": [combo.to_dict() for combo in picks]}


def _handle_eval(job_id, payload: Dict[str, Any], emit: Emit, store: Optional[ResultStore],
                 should_cancel) -> Message:
    policy = payload.get("policy", RUN_TO_END)
    first_four = [action_from_key(k) for k in payload.get("selectedFirstFour") or []]

    def on_progress(done, total):
        emit({"type": "progress", "jobId": job_id, "done": done, "total": total, "label": policy})

    def run():
        return evaluate_refinement(
            payload["gemKey"], payload.get("pos"), payload.get("abMode", BOTH),
            state_from_record(payload["start"]), target_from_record(payload["target"]), policy,
            int(payload["attemptsLeft"]), int(payload.get("rerolls", 0)),
            int(payload.get("costAddRate", 0)), bool(payload.get("unlockedReroll", False)),
            first_four=first_four, seed=int(payload.get("seed", 1)),
            options=options_from_record(payload.get("opts")),
            strategy=payload.get("strategy", OFFICIAL),
            on_progress=on_progress, should_cancel=should_cancel,
        )

    key = canonical_json({"type": "EVAL", "payload": payload})
    result = cached_evaluate(store, key, run)
    return {"type": "EVAL_RESULT", "jobId": job_id, "policy": policy, "result": result.to_dict()}


def _handle_reroll(job_id, payload: Dict[str, Any], emit: Emit, should_cancel) -> Message:
    def on_progress(done, total):
        emit({"type": "progress", "jobId": job_id, "done": done, "total": total, "label": "리롤 룩어헤드"})

    kwargs = {}
    if "REROLL_SAMPLES" in payload:
        kwargs["samples"] = int(payload["REROLL_SAMPLES"])
    if "TAU" in payload:
        kwargs["tau"] = float(payload["TAU"])

    advice = advise_reroll(
        payload["gemKey"], payload.get("pos"), payload.get("abModePrimary", BOTH),
        session_from_record(payload["manual"]), target_from_record(payload["tgt"]),
        [action_from_key(k) for k in payload.get("manActions") or []],
        options=options_from_record(payload.get("opts")),
        on_progress=on_progress, should_cancel=should_cancel, **kwargs,
    )
    return {"type": "REROLL_RESULT", "jobId": job_id, "result": advice.to_dict()}


def handle_message(message: Message, emit: Emit, store: Optional[ResultStore] = None,
                   should_cancel: Optional[Callable[[], bool]] = None) -> None:
    """요청 메시지 하나를 처리해 emit으로 응답 (예외는 error 메시지로 변환)"""
    msg_type = message.get("type")
    job_id = message.get("jobId")
    payload = message.get("payload") or {}
    try:
        if msg_type == "run":
            reply = _handle_run(job_id, payload, emit)
        elif msg_type == "EVAL":
            reply = _handle_eval(job_id, payload, emit, store, should_cancel)
        elif msg_type == "REROLL_EV":
            reply = _handle_reroll(job_id, payload, emit, should_cancel)
        else:
            raise ValueError(f"알 수 없는 요청 타입: {msg_type!r}")
    except SimulationCancelled as exc:
        logger.debug("요청 %s 취소: %s", job_id, exc)
        reply = {"type": "cancelled", "jobId": job_id}
    except Exception as exc:
        logger.exception("요청 %s(%s) 처리 실패", job_id, msg_type)
        reply = {"type": "error", "jobId": job_id, "message": str(exc)}
    emit(reply)


# === 프로세스 풀 ===
def _run_job(message: Message, slot: str, generation: int, queue, generations, db_path: Optional[str]) -> Message:
    """워커 프로세스 진입점: progress는 큐로, 최종 응답은 반환값으로"""
    store = ResultStore(db_path) if db_path else None
    replies: List[Message] = []

    def emit(msg: Message) -> None:
        if msg["type"] == "progress":
            queue.put((slot, generation, msg))
        else:
            replies.append(msg)

    def should_cancel() -> bool:
        return generations.get(slot) != generation

    handle_message(message, emit, store, should_cancel)
    return replies[-1]


@dataclass
class Ticket:
    slot: str
    generation: int
    job_id: str
    async_result: Any


class BackgroundWorker:
    """multiprocessing.Pool 기반 요청 처리기 (슬롯별 최신 요청만 유효)"""

    def __init__(self, processes: Optional[int] = None, db_path: Optional[str] = None):
        self.db_path = db_path
        if db_path:
            ResultStore(db_path).create_schema()

        self._manager = mp.Manager()
        self._queue = self._manager.Queue()
        self._generations = self._manager.dict()
        self._pool = mp.Pool(processes=processes)
        self._lock = threading.Lock()
        self._callbacks: Dict[str, Callable[[Message], None]] = {}
        self._listener = threading.Thread(target=self._listen, name="arkgrid-progress", daemon=True)
        self._listener.start()
        self._closed = False

    def __enter__(self) -> "BackgroundWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def is_current(self, ticket: Ticket) -> bool:
        return self._generations.get(ticket.slot) == ticket.generation

    def submit(self, slot: str, message: Message,
               on_message: Optional[Callable[[Message], None]] = None) -> Ticket:
        """슬롯 세대를 올리고 요청 제출 (이전 세대 요청은 무효화)"""
        if self._closed:
            raise RuntimeError("이미 종료된 워커")
        with self._lock:
            generation = self._generations.get(slot, 0) + 1
            self._generations[slot] = generation
            if on_message is not None:
                self._callbacks[slot] = on_message
            else:
                self._callbacks.pop(slot, None)

        job_id = f"{slot}:{generation}"
        request = dict(message, jobId=job_id)

        def deliver(reply: Message) -> None:
            if generation != self._generations.get(slot):
                logger.debug("낡은 결과 폐기: %s", job_id)
                return
            callback = self._callbacks.get(slot)
            if callback is not None:
                callback(reply)

        async_result = self._pool.apply_async(
            _run_job, (request, slot, generation, self._queue, self._generations, self.db_path),
            callback=deliver,
        )
        return Ticket(slot=slot, generation=generation, job_id=job_id, async_result=async_result)

    def wait(self, ticket: Ticket, timeout: Optional[float] = None) -> Optional[Message]:
        """최종 응답 반환. 그 사이 같은 슬롯에 새 요청이 들어왔다면 None"""
        reply = ticket.async_result.get(timeout)
        if not self.is_current(ticket):
            return None
        return reply

    def _listen(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            slot, generation, msg = item
            if generation != self._generations.get(slot):
                continue
            callback = self._callbacks.get(slot)
            if callback is not None:
                callback(msg)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pool.close()
        self._pool.join()
        self._queue.put(None)
        self._listener.join()
        self._manager.shutdown()
