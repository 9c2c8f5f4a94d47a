from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np

from seglive.inputs.pixel_buffer import PixelBuffer
from seglive.perception.segmentation.backends import ModelBackend, create_backend
from seglive.perception.segmentation.errors import (
    InferenceError,
    InvalidFrameError,
    ModelLoadError,
    ModelNotLoadedError,
)
from seglive.perception.segmentation.postprocess import logits_to_mask, resize_mask
from seglive.perception.segmentation.preprocess import NORMALIZATIONS, to_model_input
from seglive.utils.config import get
from seglive.utils.logger import get_logger

OUTPUT_SIZES = ("model", "input")


@dataclass
class SegmenterConfig:
    backend: str = "torchscript"
    model_path: Optional[str] = "models/deeplabv3_257.pt"
    num_classes: int = 21
    edge_size: int = 257
    normalization: str = "imagenet"
    output_size: str = "model"
    device: Optional[str] = None

    def __post_init__(self) -> None:
        if self.normalization not in NORMALIZATIONS:
            raise ValueError(f"segmentation.normalization must be one of {NORMALIZATIONS}")
        if self.output_size not in OUTPUT_SIZES:
            raise ValueError(f"segmentation.output_size must be one of {OUTPUT_SIZES}")
        if int(self.edge_size) <= 0:
            raise ValueError("segmentation.edge_size must be positive")
        if not 1 <= int(self.num_classes) <= 256:
            raise ValueError("segmentation.num_classes must be in [1, 256]")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "SegmenterConfig":
        d = cls()
        return cls(
            backend=str(get(cfg, "segmentation.backend", d.backend)),
            model_path=get(cfg, "segmentation.model_path", d.model_path),
            num_classes=int(get(cfg, "segmentation.num_classes", d.num_classes)),
            edge_size=int(get(cfg, "segmentation.edge_size", d.edge_size)),
            normalization=str(get(cfg, "segmentation.normalization", d.normalization)),
            output_size=str(get(cfg, "segmentation.output_size", d.output_size)),
            device=get(cfg, "segmentation.device", d.device),
        )


class FrameSegmenter:
    """
    Owns one loaded segmentation model and turns single frames into class masks.

    Lifecycle: Unloaded --load_model() ok--> Ready --process()--> Ready.
    A failed load_model() (or close()) leaves the segmenter Unloaded.

    process() returns a freshly allocated (H, W) uint8 array of class ids. The
    caller owns it; the segmenter keeps no reference to it or to the frame.
    With output_size="model" the mask is edge_size x edge_size, with
    output_size="input" it matches the frame's width and height.
    """

    def __init__(self, config: Optional[SegmenterConfig] = None, **overrides: Any):
        if config is None:
            config = SegmenterConfig(**overrides)
        elif overrides:
            config = SegmenterConfig(**{**config.__dict__, **overrides})
        self.config = config
        self.logger = get_logger(__name__)
        self.last_error: Optional[Exception] = None
        self._backend: Optional[ModelBackend] = None

    @property
    def is_ready(self) -> bool:
        return self._backend is not None

    def load_model(self) -> bool:
        """Locate and initialize the model. Returns True when the segmenter is Ready."""
        self.close()
        cfg = self.config
        try:
            backend = create_backend(
                cfg.backend,
                model_path=cfg.model_path,
                device=cfg.device,
                num_classes=cfg.num_classes,
            )
            backend.load()
        except Exception as e:
            err = e
            if not isinstance(e, ModelLoadError):
                err = ModelLoadError(f"Unexpected failure loading {cfg.backend} model: {e}")
                err.__cause__ = e
            self.last_error = err
            self.logger.error("Model load failed: %s", err)
            self.logger.debug("Model load traceback", exc_info=True)
            return False

        self._backend = backend
        self.last_error = None
        self.logger.info(
            "Model loaded: backend=%s path=%s device=%s edge=%d",
            cfg.backend,
            cfg.model_path,
            backend.device,
            cfg.edge_size,
        )
        return True

    def process(self, frame: Union[PixelBuffer, np.ndarray]) -> np.ndarray:
        """
        Args:
            frame: borrowed PixelBuffer, or an (H, W, 3|4) uint8 BGR/BGRA array

        Returns:
            mask: owned (H_out, W_out) uint8 class ids

        Raises:
            ModelNotLoadedError, InvalidFrameError, InferenceError
        """
        if self._backend is None:
            raise ModelNotLoadedError("process() called before a successful load_model()")
        if frame is None:
            raise InvalidFrameError("Frame is None")
        if not isinstance(frame, PixelBuffer):
            frame = PixelBuffer.from_array(frame)

        cfg = self.config
        start = time.perf_counter()
        batch = to_model_input(frame.to_rgb(), cfg.edge_size, cfg.normalization)

        try:
            logits = self._backend.run(batch)
        except Exception as e:
            raise InferenceError(f"{cfg.backend} inference failed: {e}") from e

        if logits.ndim != 4 or logits.shape[1] != cfg.num_classes:
            raise InferenceError(
                f"Model output shape {tuple(logits.shape)} does not match (1, {cfg.num_classes}, H, W)"
            )
        mask = logits_to_mask(logits)
        if cfg.output_size == "input":
            mask = resize_mask(mask, (frame.width, frame.height))

        self.logger.debug("Segmented %dx%d frame in %.2f ms", frame.width, frame.height, (time.perf_counter() - start) * 1000.0)
        return mask

    def close(self) -> None:
        if self._backend is not None:
            self._backend.close()
            self._backend = None

    def __enter__(self) -> "FrameSegmenter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
