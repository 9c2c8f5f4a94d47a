from __future__ import annotations

import cv2
import numpy as np

# torchvision DeepLabV3 weights are trained on ImageNet-normalized input.
IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)

NORMALIZATIONS = ("imagenet", "symmetric")


def to_model_input(rgb: np.ndarray, edge_size: int = 257, normalization: str = "imagenet") -> np.ndarray:
    """
    Args:
        rgb: (H, W, 3) uint8 RGB image
        edge_size: square model input resolution
        normalization: "imagenet" (mean/std) or "symmetric" ((x - 127.5) / 127.5)

    Returns:
        (1, 3, edge_size, edge_size) float32 NCHW batch
    """
    if normalization not in NORMALIZATIONS:
        raise ValueError(f"Unknown normalization {normalization!r}, expected one of {NORMALIZATIONS}")

    if rgb.shape[:2] != (edge_size, edge_size):
        rgb = cv2.resize(rgb, (edge_size, edge_size), interpolation=cv2.INTER_LINEAR)

    img = rgb.astype(np.float32)
    if normalization == "imagenet":
        img = (img / 255.0 - IMAGENET_MEAN) / IMAGENET_STD
    else:
        img = (img - 127.5) / 127.5

    return np.ascontiguousarray(img.transpose(2, 0, 1)[np.newaxis], dtype=np.float32)
