from __future__ import annotations

import abc
from pathlib import Path
from typing import Dict, Optional, Type

import numpy as np
import torch

from seglive.perception.segmentation.errors import ModelLoadError
from seglive.utils.logger import get_logger


def resolve_device(device: Optional[str] = None) -> str:
    if device:
        return device
    if torch.cuda.is_available():
        return "cuda"
    if torch.backends.mps.is_available():
        return "mps"
    return "cpu"


def _require_file(model_path: Optional[str | Path]) -> Path:
    if model_path is None:
        raise ModelLoadError("No model path configured")
    path = Path(model_path)
    if not path.is_file():
        raise ModelLoadError(f"Model not found: {path.resolve()}")
    return path


class ModelBackend(abc.ABC):
    """
    Locates and runs one model resource.

    run() takes a (N, 3, S, S) float32 batch and returns (N, C, H, W) float32
    class scores as a numpy array.
    """

    name = "base"

    def __init__(self, model_path: Optional[str | Path] = None, device: Optional[str] = None, **_: object):
        self.model_path = Path(model_path) if model_path is not None else None
        self.device = device
        self.logger = get_logger(__name__)

    @abc.abstractmethod
    def load(self) -> None:
        """Raise ModelLoadError when the resource is missing or unreadable."""
        raise NotImplementedError

    @abc.abstractmethod
    def run(self, batch: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def close(self) -> None:
        return


class _TorchBackend(ModelBackend):
    def __init__(self, model_path=None, device=None, **kwargs):
        super().__init__(model_path, device, **kwargs)
        self.model: Optional[torch.nn.Module] = None

    @torch.no_grad()
    def run(self, batch: np.ndarray) -> np.ndarray:
        x = torch.from_numpy(batch).to(self.device)
        output = self.model(x)
        if isinstance(output, dict):
            output = output["out"]
        return output.float().cpu().numpy()

    def close(self) -> None:
        self.model = None


class TorchScriptBackend(_TorchBackend):
    """Serialized TorchScript module, the bundled-asset form of the model."""

    name = "torchscript"

    def load(self) -> None:
        path = _require_file(self.model_path)
        self.device = resolve_device(self.device)
        try:
            model = torch.jit.load(str(path), map_location=self.device)
        except Exception as e:
            raise ModelLoadError(f"Could not load TorchScript model {path}: {e}") from e
        model.eval()
        self.model = model


class TorchvisionBackend(_TorchBackend):
    """
    DeepLabV3 (MobileNetV3-Large backbone) from torchvision.

    With a model_path the architecture is built empty and the state dict is
    read from disk; without one the pretrained default weights are used
    (downloaded to the torch hub cache on first use).
    """

    name = "torchvision"

    def __init__(self, model_path=None, device=None, num_classes: int = 21, **kwargs):
        super().__init__(model_path, device, **kwargs)
        self.num_classes = num_classes

    def load(self) -> None:
        import torchvision

        self.device = resolve_device(self.device)
        builder = torchvision.models.segmentation.deeplabv3_mobilenet_v3_large
        try:
            if self.model_path is None:
                model = builder(weights="DEFAULT")
            else:
                path = _require_file(self.model_path)
                state = torch.load(str(path), map_location="cpu")
                aux = any(k.startswith("aux_classifier") for k in state)
                model = builder(weights=None, weights_backbone=None, num_classes=self.num_classes, aux_loss=aux)
                model.load_state_dict(state)
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(f"Could not build torchvision DeepLabV3: {e}") from e
        model.to(self.device)
        model.eval()
        self.model = model


class OnnxBackend(ModelBackend):
    """ONNX graph run with onnxruntime on the CPU provider."""

    name = "onnx"

    def __init__(self, model_path=None, device=None, **kwargs):
        super().__init__(model_path, device, **kwargs)
        self.session = None
        self.input_name: Optional[str] = None

    def load(self) -> None:
        import onnxruntime as ort

        path = _require_file(self.model_path)
        try:
            session = ort.InferenceSession(str(path), providers=["CPUExecutionProvider"])
        except Exception as e:
            raise ModelLoadError(f"Could not load ONNX model {path}: {e}") from e
        self.session = session
        self.input_name = session.get_inputs()[0].name

    def run(self, batch: np.ndarray) -> np.ndarray:
        outputs = self.session.run(None, {self.input_name: batch})
        return np.asarray(outputs[0], dtype=np.float32)

    def close(self) -> None:
        self.session = None


BACKENDS: Dict[str, Type[ModelBackend]] = {
    TorchScriptBackend.name: TorchScriptBackend,
    TorchvisionBackend.name: TorchvisionBackend,
    OnnxBackend.name: OnnxBackend,
}


def create_backend(name: str, **kwargs) -> ModelBackend:
    try:
        cls = BACKENDS[name]
    except KeyError:
        raise ModelLoadError(f"Unknown model backend {name!r}, expected one of {sorted(BACKENDS)}") from None
    return cls(**kwargs)
