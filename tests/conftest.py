from pathlib import Path
from typing import Dict

import numpy as np
import pytest
import torch


class TinySegNet(torch.nn.Module):
    """Stride-2 conv head: 257x257 input -> 129x129 logits."""

    def __init__(self, num_classes: int = 21):
        super().__init__()
        self.head = torch.nn.Conv2d(3, num_classes, kernel_size=3, stride=2, padding=1)

    def forward(self, x: torch.Tensor) -> Dict[str, torch.Tensor]:
        return {"out": self.head(x)}


def save_tiny_model(path: Path, num_classes: int = 21) -> Path:
    torch.manual_seed(0)
    torch.jit.script(TinySegNet(num_classes).eval()).save(str(path))
    return path


@pytest.fixture
def model_path(tmp_path) -> Path:
    return save_tiny_model(tmp_path / "tiny.pt")


@pytest.fixture
def frame() -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(72, 128, 4), dtype=np.uint8)


def write_clip(path: Path, n_frames: int = 5, fps: float = 10.0, size=(64, 48)) -> Path:
    import cv2

    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, size)
    for i in range(n_frames):
        writer.write(np.full((size[1], size[0], 3), i * 40, dtype=np.uint8))
    writer.release()
    return path


class _LogitsOnly(torch.nn.Module):
    def __init__(self, model: torch.nn.Module):
        super().__init__()
        self.model = model

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.model(x)["out"]


def save_tiny_onnx(path: Path, num_classes: int = 21, edge_size: int = 257) -> Path:
    torch.manual_seed(0)
    model = _LogitsOnly(TinySegNet(num_classes)).eval()
    torch.onnx.export(
        model,
        torch.randn(1, 3, edge_size, edge_size),
        str(path),
        input_names=["images"],
        output_names=["logits"],
        dynamo=False,
    )
    return path
