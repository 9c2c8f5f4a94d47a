import numpy as np
import pytest

from seglive.perception.segmentation.errors import ModelNotLoadedError
from seglive.perception.segmentation.frame_segmenter import FrameSegmenter
from seglive.runtime.live_segmentation import LiveSegmentation
from seglive.utils.types import FramePacket


class FakeClock:
    def __init__(self):
        self.t = 0.0

    def __call__(self) -> float:
        return self.t


class SlowSegmenter:
    """Stands in for a loaded FrameSegmenter whose process() takes latency_s."""

    is_ready = True

    def __init__(self, clock: FakeClock, latency_s: float):
        self.clock = clock
        self.latency_s = latency_s
        self.calls = 0

    def process(self, frame):
        self.calls += 1
        self.clock.t += self.latency_s
        return np.full((2, 2), self.calls, dtype=np.uint8)


def packets(n: int, fps: float = 10.0):
    for i in range(n):
        yield i + 1, FramePacket(frame=np.zeros((4, 4, 3), dtype=np.uint8), timestamp=i / fps)


def test_late_frames_are_dropped():
    clock = FakeClock()
    runner = LiveSegmentation(SlowSegmenter(clock, 0.25), drop_late_frames=True, clock=clock)
    results = list(runner.run(packets(10)))

    assert [r.frame_id for r in results] == list(range(1, 11))
    assert [r.frame_id for r in results if not r.dropped] == [1, 4, 7, 10]
    assert all(r.mask is None for r in results if r.dropped)
    assert runner.stats()["processed"] == 4
    assert runner.stats()["dropped"] == 6


def test_all_frames_processed_without_drop_policy():
    clock = FakeClock()
    runner = LiveSegmentation(SlowSegmenter(clock, 0.25), drop_late_frames=False, clock=clock)
    results = list(runner.run(packets(5)))
    assert not any(r.dropped for r in results)
    assert [int(r.mask[0, 0]) for r in results] == [1, 2, 3, 4, 5]
    assert results[0].latency_ms == pytest.approx(250.0)


def test_watchdog_counts_over_budget_frames():
    clock = FakeClock()
    runner = LiveSegmentation(SlowSegmenter(clock, 0.25), drop_late_frames=False, watchdog_ms=100, clock=clock)
    list(runner.run(packets(3)))
    assert runner.stats()["over_budget"] == 3


def test_runner_requires_loaded_segmenter(tmp_path):
    seg = FrameSegmenter(model_path=str(tmp_path / "none.pt"))
    with pytest.raises(ModelNotLoadedError):
        LiveSegmentation(seg)


def test_runner_from_config(model_path):
    seg = FrameSegmenter(model_path=str(model_path), device="cpu")
    assert seg.load_model()
    runner = LiveSegmentation.from_config(seg, {"runtime": {"drop_late_frames": False, "watchdog_ms": 50}})
    assert runner.drop_late_frames is False
    assert runner.health.budget_ms == 50.0
    results = list(runner.run(packets(2)))
    assert results[0].mask.shape == (129, 129)
    assert "segmentation" in results[0].stages_ms
