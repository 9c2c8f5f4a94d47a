#!/usr/bin/env python3
"""
Export torchvision DeepLabV3 (MobileNetV3-Large) as a SegLive model resource.

Formats:
  torchscript  -> models/deeplabv3_257.pt    (backend: torchscript)
  onnx         -> models/deeplabv3_257.onnx  (backend: onnx)
  state_dict   -> models/deeplabv3_257.pth   (backend: torchvision)
"""
from __future__ import annotations

import argparse
from pathlib import Path

import torch
import torchvision


class _OutOnly(torch.nn.Module):
    """Unwraps torchvision's {"out": ...} dict so ONNX gets a single tensor output."""

    def __init__(self, model: torch.nn.Module):
        super().__init__()
        self.model = model

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.model(x)["out"]


def export(fmt: str, out_path: Path, edge_size: int = 257, opset: int = 17) -> None:
    model = torchvision.models.segmentation.deeplabv3_mobilenet_v3_large(weights="DEFAULT")
    model.eval()

    out_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "torchscript":
        torch.jit.script(model).save(str(out_path))
    elif fmt == "state_dict":
        torch.save(model.state_dict(), str(out_path))
    elif fmt == "onnx":
        dummy = torch.randn(1, 3, edge_size, edge_size)
        torch.onnx.export(
            _OutOnly(model),
            dummy,
            str(out_path),
            opset_version=opset,
            input_names=["images"],
            output_names=["logits"],
        )
    else:
        raise ValueError(f"Unknown format: {fmt}")

    print(f"DeepLabV3 exported ({fmt}) to {out_path}")


def main():
    parser = argparse.ArgumentParser(description="Export DeepLabV3 for SegLive")
    parser.add_argument("--format", choices=["torchscript", "onnx", "state_dict"], default="torchscript")
    parser.add_argument("--out", default=None, help="Output path (default depends on format)")
    parser.add_argument("--edge-size", type=int, default=257, help="Square input size for ONNX export")
    parser.add_argument("--opset", type=int, default=17)
    args = parser.parse_args()

    default_out = {
        "torchscript": "models/deeplabv3_257.pt",
        "onnx": "models/deeplabv3_257.onnx",
        "state_dict": "models/deeplabv3_257.pth",
    }[args.format]
    export(args.format, Path(args.out or default_out), edge_size=args.edge_size, opset=args.opset)


if __name__ == "__main__":
    main()
