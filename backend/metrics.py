"""Workflow metrics collector."""
from __future__ import annotations

import functools
import time
from collections import deque
from typing import Dict

# Latency samples kept for the rolling average.
LATENCY_WINDOW = 1000


class Metrics:
    def __init__(self):
        self.counters = {
            "actions_total": 0,
            "actions_refused": 0,
            "escalations": 0,
            "comments_added": 0,
            "submissions_created": 0,
        }
        self.by_action: Dict[str, int] = {}
        self.refusals_by_code: Dict[str, int] = {}
        self.durations = {
            "transition_latency_ms": deque(maxlen=LATENCY_WINDOW),
        }

    def record_action(self, action: str):
        self.counters["actions_total"] += 1
        self.by_action[action] = self.by_action.get(action, 0) + 1

    def record_refusal(self, code: str):
        self.counters["actions_refused"] += 1
        self.refusals_by_code[code] = self.refusals_by_code.get(code, 0) + 1

    def record_escalation(self):
        self.counters["escalations"] += 1

    def record_comment(self):
        self.counters["comments_added"] += 1

    def record_created(self):
        self.counters["submissions_created"] += 1

    def record_latency(self, ms: float):
        self.durations["transition_latency_ms"].append(ms)

    def reset(self):
        self.__init__()

    def snapshot(self) -> Dict[str, object]:
        avg_latency = 0.0
        latencies = self.durations.get("transition_latency_ms", [])
        if latencies:
            avg_latency = sum(latencies) / len(latencies)
        return {
            "counters": dict(self.counters),
            "by_action": dict(self.by_action),
            "refusals_by_code": dict(self.refusals_by_code),
            "average_latency_ms": round(avg_latency, 2),
        }


metrics = Metrics()


def timed(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        start = time.time()
        try:
            return fn(*args, **kwargs)
        finally:
            metrics.record_latency((time.time() - start) * 1000)

    return wrapper
