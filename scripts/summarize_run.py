#!/usr/bin/env python3
import json
import sys
from pathlib import Path
from statistics import mean, median

from seglive.perception.segmentation.postprocess import VOC_CLASSES


def pct(n, d):
    return (100.0 * n / d) if d else 0.0


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/summarize_run.py results/run_YYYYMMDD_HHMMSS")
        sys.exit(1)

    run_dir = Path(sys.argv[1])
    metrics_path = run_dir / "metrics.json"
    if not metrics_path.exists():
        raise FileNotFoundError(f"Missing: {metrics_path}")

    m = json.loads(metrics_path.read_text())
    frames = m.get("frames", [])
    n = len(frames)
    if n == 0:
        print("No frames found in metrics.json")
        return

    processed = [f for f in frames if not f.get("dropped")]
    latencies = [f["latency_ms"] for f in processed if f.get("latency_ms") is not None]

    print("\n================ SegLive RUN SUMMARY ================")
    print(f"Run dir: {run_dir}")
    print(f"Frames: {n}  processed={len(processed)} ({pct(len(processed), n):.1f}%)  dropped={n - len(processed)}")
    if latencies:
        print(
            f"Latency (ms) avg={mean(latencies):.2f}  med={median(latencies):.2f}"
            f"  min={min(latencies):.2f}  max={max(latencies):.2f}"
        )
    else:
        print("Latency: (missing)")

    class_pixels = (m.get("summary") or {}).get("class_pixels") or []
    total = sum(class_pixels)
    if total:
        print("\nClass coverage (processed frames):")
        for cls_id, count in sorted(enumerate(class_pixels), key=lambda kv: -kv[1])[:8]:
            if count == 0:
                break
            name = VOC_CLASSES[cls_id] if cls_id < len(VOC_CLASSES) else f"class_{cls_id}"
            print(f"  {name:12s}: {pct(count, total):5.1f}%")
    print("=====================================================\n")


if __name__ == "__main__":
    main()
