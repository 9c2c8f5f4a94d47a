from __future__ import annotations

from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from seglive.perception.segmentation.postprocess import blend, class_names, colorize, mirror


def draw_segmentation(frame: Any, mask: Optional[np.ndarray], alpha: float = 0.6, mirrored: bool = False) -> Any:
    """Blend a colorized class mask over a BGR frame; dropped frames pass through."""
    if mask is None:
        return frame
    overlay = colorize(mask, alpha=alpha)
    if mirrored:
        overlay = mirror(overlay)
    return blend(frame, overlay)


def draw_hud(frame: Any, fps: float, stages_ms: Dict[str, float], warnings: Optional[List[str]] = None):
    """Minimal HUD overlay with FPS and stage timings."""
    render = frame.copy()
    y = 25
    cv2.putText(render, f"SegLive | FPS: {fps:5.1f}", (15, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
    y += 28

    for name, ms in list(stages_ms.items())[:6]:
        cv2.putText(render, f"{name}: {ms:5.1f} ms", (15, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (220, 220, 220), 2)
        y += 22

    if warnings:
        y += 8
        for w in warnings[:3]:
            cv2.putText(render, w, (15, y), cv2.FONT_HERSHEY_SIMPLEX, 0.65, (0, 0, 255), 2)
            y += 24

    return render


def present_classes(mask: Optional[np.ndarray], min_fraction: float = 0.01) -> List[str]:
    """Names of classes covering at least min_fraction of the mask, background excluded."""
    if mask is None:
        return []
    counts = np.bincount(mask.ravel())
    ids = [i for i, c in enumerate(counts) if i != 0 and c >= min_fraction * mask.size]
    return class_names(ids)
