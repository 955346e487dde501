"""Tests for worker message handling and the slot-generation process pool."""
from __future__ import annotations

import pytest

import arkgrid.worker as worker
from arkgrid.advisor import REASON_LOCKED
from arkgrid.store import ResultStore
from arkgrid.worker import BackgroundWorker, handle_message, options_from_record, session_from_record

GEM = "질서-안정"
START = {"eff": 1, "pts": 1, "aName": "공격력", "aLvl": 1, "bName": "낙인력", "bLvl": 1}


def eval_message(max_trials=400, **overrides):
    payload = {
        "gemKey": GEM,
        "pos": "any",
        "abMode": "BOTH",
        "start": START,
        "target": {"eff": 2, "pts": 1},
        "policy": "RUN_TO_END",
        "attemptsLeft": 3,
        "seed": 5,
        "opts": {"maxTrials": max_trials, "epsilon": 0.0, "batch": 200},
    }
    payload.update(overrides)
    return {"type": "EVAL", "jobId": "j1", "payload": payload}


def collect(message, **kwargs):
    out = []
    handle_message(message, out.append, **kwargs)
    return out


class TestRecords:
    def test_options_from_budget(self):
        opts = options_from_record({"maxTrials": 10000})
        assert (opts.max_trials, opts.batch, opts.epsilon) == (10000, 800, 0.0035)

    def test_options_explicit(self):
        opts = options_from_record({"maxTrials": 300, "epsilon": 0.01, "batch": 50})
        assert (opts.max_trials, opts.batch, opts.epsilon) == (300, 50, 0.01)
        assert options_from_record(None) is None

    def test_session_snake_and_camel_state(self):
        session = session_from_record({
            "attemptsLeft": 4, "rerolls": 1, "unlocked": True, "costAddRate": -1,
            "state": {"eff": 2, "pts": 3, "a_name": "공격력", "a_lvl": 4, "b_name": "낙인력", "b_lvl": 5},
        })
        assert session.cost_add_rate == -1
        assert session.state.a_lvl == 4


class TestHandleMessage:
    def test_run_allocates_cores(self):
        message = {"type": "run", "jobId": "r1", "payload": {
            "cores": [{"id": "sun", "name": "해 코어", "grade": "RELIC"},
                      {"id": "moon", "name": "달 코어", "grade": "LEGEND"}],
            "gems": [
                {"id": "a", "will": 5, "point": 5, "o1k": "atk", "o1v": 3, "o2k": "boss", "o2v": 2},
                {"id": "b", "will": 4, "point": 5, "o1k": "add", "o1v": 2, "o2k": "atk", "o2v": 1},
                {"id": "c", "will": 3, "point": 4, "o1k": "brand", "o1v": 5, "o2k": "boss", "o2v": 4},
            ],
            "role": "dealer",
        }}
        out = collect(message)
        progress = [m for m in out if m["type"] == "progress"]
        reply = out[-1]
        assert [(m["done"], m["total"]) for m in progress] == [(1, 2), (2, 2)]
        assert reply["type"] == "result"
        assert reply["jobId"] == "r1"
        assert len(reply["result"]) == 2
        assert reply["result"][0]["totalPoint"] >= 10

    def test_eval_result(self):
        out = collect(eval_message())
        reply = out[-1]
        assert reply["type"] == "EVAL_RESULT"
        assert reply["policy"] == "RUN_TO_END"
        assert reply["result"]["trialsUsed"] == 400
        assert [m["done"] for m in out[:-1]] == [200, 400]

    def test_eval_with_first_four(self):
        out = collect(eval_message(attemptsLeft=1, selectedFirstFour=["hold", "hold", "hold", "hold"]))
        assert out[-1]["result"]["successProb"] == 0.0
        assert out[-1]["result"]["expectedGold"] == 900.0

    def test_eval_cached(self, tmp_path, monkeypatch):
        store = ResultStore(str(tmp_path / "cache.db"))
        store.create_schema()
        calls = []
        original = worker.evaluate_refinement

        def counting(*args, **kwargs):
            calls.append(1)
            return original(*args, **kwargs)
        monkeypatch.setattr(worker, "evaluate_refinement", counting)

        first = collect(eval_message(), store=store)[-1]
        second = collect(eval_message(), store=store)[-1]
        assert len(calls) == 1
        assert first["result"] == second["result"]

    def test_reroll_locked(self):
        message = {"type": "REROLL_EV", "jobId": "x", "payload": {
            "gemKey": GEM, "pos": "any", "abModePrimary": "BOTH",
            "manual": {"attemptsLeft": 5, "rerolls": 1, "unlocked": False, "state": START},
            "tgt": {"eff": 4, "pts": 4},
            "manActions": ["eff_+1", "pts_+1", "a_lvl_+1", "hold"],
        }}
        reply = collect(message)[-1]
        assert reply["type"] == "REROLL_RESULT"
        assert reply["result"]["reason"] == REASON_LOCKED
        assert reply["result"]["shouldReroll"] is False

    def test_unknown_type_is_error(self):
        reply = collect({"type": "PING", "jobId": "p"})[-1]
        assert reply["type"] == "error"
        assert reply["jobId"] == "p"
        assert "PING" in reply["message"]

    def test_bad_payload_is_error(self):
        reply = collect({"type": "EVAL", "jobId": "e", "payload": {}})[-1]
        assert reply["type"] == "error"

    def test_unknown_action_key_is_error(self):
        reply = collect(eval_message(selectedFirstFour=["eff_+7"]))[-1]
        assert reply["type"] == "error"

    def test_cancelled(self):
        reply = collect(eval_message(), should_cancel=lambda: True)[-1]
        assert reply == {"type": "cancelled", "jobId": "j1"}


class TestBackgroundWorker:
    def test_newer_request_supersedes_older(self):
        received = []
        with BackgroundWorker(processes=1) as bg:
            old = bg.submit("eval", eval_message(max_trials=200_000, attemptsLeft=9), received.append)
            new = bg.submit("eval", eval_message(), received.append)

            assert bg.wait(old, timeout=120) is None
            reply = bg.wait(new, timeout=120)

        assert reply["type"] == "EVAL_RESULT"
        assert reply["jobId"] == "eval:2"
        finals = [m for m in received if m["type"] != "progress"]
        assert all(m["jobId"] == "eval:2" for m in finals)

    def test_closed_worker_rejects(self):
        bg = BackgroundWorker(processes=1)
        bg.close()
        with pytest.raises(RuntimeError):
            bg.submit("x", eval_message())
