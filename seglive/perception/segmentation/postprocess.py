from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from seglive.perception.segmentation.errors import InferenceError

BACKGROUND = 0

# PASCAL VOC 2012 class names, index == class id (torchvision DeepLabV3 mapping)
VOC_CLASSES = (
    "background", "aeroplane", "bicycle", "bird", "boat", "bottle", "bus",
    "car", "cat", "chair", "cow", "diningtable", "dog", "horse", "motorbike",
    "person", "pottedplant", "sheep", "sofa", "train", "tvmonitor",
)


def voc_palette(n: int = 256) -> np.ndarray:
    """Standard PASCAL VOC color map, (n, 3) uint8 RGB."""
    palette = np.zeros((n, 3), dtype=np.uint8)
    for i in range(n):
        c, r, g, b = i, 0, 0, 0
        for j in range(8):
            r |= ((c >> 0) & 1) << (7 - j)
            g |= ((c >> 1) & 1) << (7 - j)
            b |= ((c >> 2) & 1) << (7 - j)
            c >>= 3
        palette[i] = (r, g, b)
    return palette


VOC_PALETTE = voc_palette()


def logits_to_mask(logits: np.ndarray) -> np.ndarray:
    """
    Convert model output into a class-id mask.

    Args:
        logits: (1, C, H, W) or (C, H, W) float scores

    Returns:
        mask: (H, W) uint8 class ids, freshly allocated
    """
    if logits.ndim == 4:
        if logits.shape[0] != 1:
            raise InferenceError(f"Expected a single-image batch, got {logits.shape[0]}")
        logits = logits[0]
    if logits.ndim != 3:
        raise InferenceError(f"Expected (C, H, W) logits, got shape {logits.shape}")
    num_classes = logits.shape[0]
    if num_classes < 1 or num_classes > 256:
        raise InferenceError(f"Cannot encode {num_classes} classes in one byte")
    return np.ascontiguousarray(logits.argmax(axis=0), dtype=np.uint8)


def resize_mask(mask: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Nearest-neighbour resize to (width, height); class ids are never blended."""
    w, h = size
    if mask.shape[:2] == (h, w):
        return mask.copy()
    return cv2.resize(mask, (w, h), interpolation=cv2.INTER_NEAREST)


def colorize(mask: np.ndarray, palette: np.ndarray = VOC_PALETTE, alpha: float = 0.6) -> np.ndarray:
    """
    Render a class mask as an RGBA overlay.

    Background pixels are fully transparent; every other class gets its palette
    color with the given opacity. Output is (H, W, 4) uint8, RGBA byte order.
    """
    rgba = np.zeros(mask.shape[:2] + (4,), dtype=np.uint8)
    rgba[..., :3] = palette[mask]
    rgba[..., 3] = np.where(mask == BACKGROUND, 0, int(round(255 * float(alpha)))).astype(np.uint8)
    return rgba


def mirror(image: np.ndarray) -> np.ndarray:
    """Horizontal flip (back camera frames arrive mirrored relative to the preview)."""
    return cv2.flip(image, 1)


def blend(frame_bgr: np.ndarray, overlay_rgba: np.ndarray) -> np.ndarray:
    """Alpha-composite an RGBA overlay over a BGR frame, resizing the overlay to fit."""
    h, w = frame_bgr.shape[:2]
    if overlay_rgba.shape[:2] != (h, w):
        overlay_rgba = cv2.resize(overlay_rgba, (w, h), interpolation=cv2.INTER_NEAREST)
    color = overlay_rgba[..., 2::-1].astype(np.float32)
    a = overlay_rgba[..., 3:4].astype(np.float32) / 255.0
    out = frame_bgr.astype(np.float32) * (1.0 - a) + color * a
    return np.clip(out, 0, 255).astype(np.uint8)


def class_histogram(mask: np.ndarray, num_classes: int) -> np.ndarray:
    """Pixel count per class id, length num_classes."""
    return np.bincount(mask.ravel(), minlength=num_classes)[:num_classes]


def class_names(ids: Sequence[int], names: Sequence[str] = VOC_CLASSES) -> list:
    return [names[i] if 0 <= i < len(names) else f"class_{i}" for i in ids]
