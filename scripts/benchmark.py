#!/usr/bin/env python3
"""
Benchmark FrameSegmenter latency per backend on a synthetic 1280x720 BGRA frame
(the capture format of the live preview).
"""
from __future__ import annotations

import argparse
import time

import numpy as np

from seglive.perception.segmentation.frame_segmenter import FrameSegmenter


def bench(backend: str, model_path: str | None, n: int, device: str | None) -> float:
    segmenter = FrameSegmenter(backend=backend, model_path=model_path, device=device)
    if not segmenter.load_model():
        raise RuntimeError(f"{backend}: {segmenter.last_error}")
    rng = np.random.default_rng(0)
    frame = rng.integers(0, 256, size=(720, 1280, 4), dtype=np.uint8)
    with segmenter:
        # warmup
        for _ in range(3):
            segmenter.process(frame)
        t0 = time.perf_counter()
        for _ in range(n):
            segmenter.process(frame)
        t1 = time.perf_counter()
    return (t1 - t0) / n * 1000.0


def main():
    parser = argparse.ArgumentParser(description="SegLive backend benchmark")
    parser.add_argument("--torchscript", default="models/deeplabv3_257.pt")
    parser.add_argument("--onnx", default="models/deeplabv3_257.onnx")
    parser.add_argument("-n", type=int, default=30)
    parser.add_argument("--device", default="cpu")
    args = parser.parse_args()

    print("\n=== SegLive Benchmark ===")
    for backend, path in (("torchscript", args.torchscript), ("onnx", args.onnx)):
        ms = bench(backend, path, args.n, args.device)
        print(f"{backend:<12} avg latency: {ms:.2f} ms ({1000.0 / ms:.1f} FPS)")


if __name__ == "__main__":
    main()
