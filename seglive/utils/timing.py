from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class StageTimer:
    """Lightweight per-stage timing for a single frame."""

    stages_ms: Dict[str, float] = field(default_factory=dict)

    def mark(self, stage_name: str, stage_start_ts: float) -> float:
        elapsed = (time.perf_counter() - stage_start_ts) * 1000.0
        self.stages_ms[stage_name] = elapsed
        return elapsed


@dataclass
class FPSMeter:
    """Exponential moving average FPS estimator."""

    smoothing: float = 0.9
    fps: float = 0.0
    _last_ts: float = field(default_factory=time.perf_counter)

    def tick(self) -> float:
        now = time.perf_counter()
        dt = max(now - self._last_ts, 1e-9)
        inst_fps = 1.0 / dt
        self.fps = inst_fps if self.fps <= 0 else (self.smoothing * self.fps + (1 - self.smoothing) * inst_fps)
        self._last_ts = now
        return self.fps
