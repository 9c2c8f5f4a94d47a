from __future__ import annotations

import time
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

from seglive.inputs.pixel_buffer import PixelBuffer
from seglive.perception.segmentation.errors import ModelNotLoadedError
from seglive.perception.segmentation.frame_segmenter import FrameSegmenter
from seglive.runtime.health_monitor import HealthMonitor
from seglive.utils.config import get
from seglive.utils.logger import get_logger
from seglive.utils.timing import FPSMeter, StageTimer
from seglive.utils.types import FramePacket, SegmentationResult


class LiveSegmentation:
    """
    Feeds frames serially to a FrameSegmenter.

    process() is synchronous, so while one frame is being segmented the next
    ones keep arriving. With drop_late_frames on, a frame whose timestamp falls
    inside the previous frame's processing window (arrival + latency) is
    discarded instead of queued, and reported as a dropped result.
    """

    def __init__(
        self,
        segmenter: FrameSegmenter,
        drop_late_frames: bool = True,
        watchdog_ms: float = 0.0,
        fps_smoothing: float = 0.9,
        pixel_format: Optional[str] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        if not segmenter.is_ready:
            raise ModelNotLoadedError("LiveSegmentation needs a segmenter with a loaded model")
        self.segmenter = segmenter
        self.drop_late_frames = drop_late_frames
        self.pixel_format = pixel_format
        self.clock = clock
        self.health = HealthMonitor({"watchdog_ms": watchdog_ms})
        self.fps_meter = FPSMeter(smoothing=fps_smoothing)
        self.logger = get_logger(__name__)
        self.processed = 0
        self.dropped = 0

    @classmethod
    def from_config(cls, segmenter: FrameSegmenter, cfg: Dict[str, Any]) -> "LiveSegmentation":
        return cls(
            segmenter,
            drop_late_frames=bool(get(cfg, "runtime.drop_late_frames", True)),
            watchdog_ms=float(get(cfg, "runtime.watchdog_ms", 0.0)),
            fps_smoothing=float(get(cfg, "performance.fps_smoothing", 0.9)),
        )

    def run(self, frames: Iterable[Tuple[int, FramePacket]]) -> Iterator[SegmentationResult]:
        busy_until: Optional[float] = None
        for frame_id, packet in frames:
            if self.drop_late_frames and busy_until is not None and packet.timestamp < busy_until:
                self.dropped += 1
                self.logger.debug("Dropping late frame %d (t=%.3fs, busy until %.3fs)", frame_id, packet.timestamp, busy_until)
                yield SegmentationResult(frame_id=frame_id, timestamp=packet.timestamp, dropped=True)
                continue

            timer = StageTimer()
            started = self.clock()

            t0 = time.perf_counter()
            buffer = PixelBuffer.from_array(packet.frame, self.pixel_format)
            timer.mark("wrap", t0)

            t1 = time.perf_counter()
            mask = self.segmenter.process(buffer)
            timer.mark("segmentation", t1)

            latency_ms = (self.clock() - started) * 1000.0
            busy_until = packet.timestamp + latency_ms / 1000.0
            self.health.check_latency(latency_ms, frame_id)
            self.fps_meter.tick()
            self.processed += 1

            yield SegmentationResult(
                frame_id=frame_id,
                timestamp=packet.timestamp,
                mask=mask,
                latency_ms=latency_ms,
                stages_ms=dict(timer.stages_ms),
            )

    def stats(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "dropped": self.dropped,
            "over_budget": self.health.over_budget,
            "fps": round(self.fps_meter.fps, 2),
        }
