from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import cv2
import numpy as np
from rich.console import Console
from tqdm import tqdm

from seglive.inputs.video_input import VideoInput
from seglive.perception.segmentation.frame_segmenter import FrameSegmenter, SegmenterConfig
from seglive.perception.segmentation.postprocess import class_histogram
from seglive.runtime.live_segmentation import LiveSegmentation
from seglive.utils.config import DEFAULT_CONFIG_PATH, get, load_yaml
from seglive.utils.logger import setup_logger
from seglive.visualization.overlay import draw_hud, draw_segmentation, present_classes


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SegLive - DeepLab segmentation over video frames")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to YAML config")
    parser.add_argument("--input", required=True, help="Path to input video")
    parser.add_argument("--model", default=None, help="Override segmentation.model_path")
    parser.add_argument("--mirror", action="store_true", help="Mirror the overlay horizontally (back camera footage)")
    parser.add_argument("--max-frames", type=int, default=None, help="Stop after N frames")
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg: Dict[str, Any] = load_yaml(args.config)
    if args.model:
        cfg.setdefault("segmentation", {})["model_path"] = args.model

    output_base = get(cfg, "runtime.output_dir", "results")
    run_dir = make_run_dir(output_base)
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))

    console = Console()
    console.print(f"[bold]SegLive[/bold] run dir: {run_dir}")

    segmenter = FrameSegmenter(SegmenterConfig.from_dict(cfg))
    if not segmenter.load_model():
        console.print(f"[bold red]Can't load model:[/bold red] {segmenter.last_error}")
        return 1

    save_video = bool(get(cfg, "runtime.save_video", True))
    save_metrics = bool(get(cfg, "runtime.save_metrics", True))
    overlay_enabled = bool(get(cfg, "overlay.enabled", True))
    hud_enabled = bool(get(cfg, "overlay.hud", True))
    alpha = float(get(cfg, "overlay.alpha", 0.6))
    mirrored = args.mirror or bool(get(cfg, "overlay.mirror", False))
    num_classes = segmenter.config.num_classes

    runner = LiveSegmentation.from_config(segmenter, cfg)
    out_video_path = run_dir / "output.mp4"
    metrics: Dict[str, Any] = {
        "project": cfg.get("project", {}),
        "input": {"path": args.input, "meta": {}},
        "model": segmenter.config.__dict__,
        "frames": [],
    }
    class_pixels = np.zeros(num_classes, dtype=np.int64)
    frames_by_id: Dict[int, Any] = {}
    vin = None
    writer = None

    def tee():
        for frame_id, packet in vin.frames():
            frames_by_id[frame_id] = packet.frame
            yield frame_id, packet

    try:
        vin = VideoInput(args.input, max_frames=args.max_frames)
        logger.info("Input video: %s", args.input)
        if vin.meta:
            metrics["input"]["meta"] = vin.meta.__dict__

        if save_video and vin.meta:
            fourcc = cv2.VideoWriter_fourcc(*"mp4v")
            writer = cv2.VideoWriter(str(out_video_path), fourcc, vin.fps, (vin.meta.width, vin.meta.height))
            if not writer.isOpened():
                raise RuntimeError("Could not open VideoWriter (mp4v). Try a different codec/container.")

        total = vin.meta.frame_count if vin.meta and vin.meta.frame_count > 0 else None
        if total and args.max_frames:
            total = min(total, args.max_frames)

        # Frames collected while the model is busy reuse the last mask, as the live preview does.
        last_mask = None
        for result in tqdm(runner.run(tee()), total=total, desc="Segmenting"):
            frame = frames_by_id.pop(result.frame_id)
            if not result.dropped:
                last_mask = result.mask
                class_pixels += class_histogram(result.mask, num_classes)

            if writer is not None:
                render = frame
                if overlay_enabled:
                    render = draw_segmentation(render, last_mask, alpha=alpha, mirrored=mirrored)
                if hud_enabled:
                    render = draw_hud(render, runner.fps_meter.fps, result.stages_ms, present_classes(last_mask))
                writer.write(render)

            if save_metrics:
                metrics["frames"].append(
                    {
                        "frame_id": result.frame_id,
                        "timestamp_s": round(result.timestamp, 3),
                        "dropped": result.dropped,
                        "latency_ms": round(result.latency_ms, 2),
                        "classes": present_classes(result.mask),
                    }
                )
    finally:
        if vin is not None:
            vin.stop()
        if writer is not None:
            writer.release()
        segmenter.close()

    stats = runner.stats()
    logger.info("Frames processed=%d dropped=%d over_budget=%d", stats["processed"], stats["dropped"], stats["over_budget"])

    if save_metrics:
        metrics["summary"] = {**stats, "class_pixels": class_pixels.tolist()}
        metrics_path = run_dir / "metrics.json"
        metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
        logger.info("Saved metrics: %s", metrics_path)

    if writer is not None:
        logger.info("Saved video: %s", out_video_path)

    console.print(
        f"[bold green]Done.[/bold green] processed={stats['processed']} dropped={stats['dropped']} fps={stats['fps']}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
