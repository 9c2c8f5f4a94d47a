from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from seglive.perception.segmentation.errors import InvalidFrameError

# pixel format -> (channel count, index order of R, G, B)
PIXEL_FORMATS = {
    "BGRA": (4, (2, 1, 0)),
    "RGBA": (4, (0, 1, 2)),
    "BGR": (3, (2, 1, 0)),
    "RGB": (3, (0, 1, 2)),
}


def _is_interleaved(data: np.ndarray) -> bool:
    channels = data.shape[2]
    return data.strides[2] == 1 and data.strides[1] == channels and data.strides[0] >= data.shape[1] * channels


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Borrowed, read-only view over an interleaved 8-bit frame.

    `data` is an (H, W, C) uint8 array; rows may be padded, in which case
    `stride` (bytes per row) is larger than `width * channels`. The buffer
    never copies on construction: it keeps a non-writeable view of the
    caller's memory, so it must not outlive the frame it describes.
    from_array() is the exception: views that are not row-major interleaved
    (flipped, channel-sliced) are compacted into a copy first.
    """

    data: np.ndarray
    pixel_format: str = "BGRA"

    def __post_init__(self) -> None:
        fmt = str(self.pixel_format).upper()
        if fmt not in PIXEL_FORMATS:
            raise InvalidFrameError(f"Unsupported pixel format: {self.pixel_format!r}")
        data = self.data
        if not isinstance(data, np.ndarray):
            raise InvalidFrameError(f"Frame data must be a numpy array, got {type(data).__name__}")
        if data.dtype != np.uint8:
            raise InvalidFrameError(f"Frame data must be uint8, got {data.dtype}")
        channels = PIXEL_FORMATS[fmt][0]
        if data.ndim != 3 or data.shape[2] != channels:
            raise InvalidFrameError(f"{fmt} frame must have shape (H, W, {channels}), got {data.shape}")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise InvalidFrameError(f"Empty frame: {data.shape}")
        if not _is_interleaved(data):
            raise InvalidFrameError(f"{fmt} pixels must be interleaved with positive row stride, got strides {data.strides}")

        view = data.view()
        view.flags.writeable = False
        object.__setattr__(self, "data", view)
        object.__setattr__(self, "pixel_format", fmt)

    @classmethod
    def from_array(cls, frame: np.ndarray, pixel_format: Optional[str] = None) -> "PixelBuffer":
        """Wrap an OpenCV-style frame; 4 channels default to BGRA, 3 to BGR."""
        if frame is None:
            raise InvalidFrameError("Frame is None")
        if pixel_format is None:
            channels = frame.shape[2] if getattr(frame, "ndim", 0) == 3 else 0
            pixel_format = "BGRA" if channels == 4 else "BGR"
        if isinstance(frame, np.ndarray) and frame.ndim == 3 and not _is_interleaved(frame):
            # flipped or channel-sliced views get a compact owned copy
            frame = np.ascontiguousarray(frame)
        return cls(frame, pixel_format)

    @classmethod
    def from_bytes(
        cls,
        buffer: Union[bytes, bytearray, memoryview],
        width: int,
        height: int,
        stride: Optional[int] = None,
        pixel_format: str = "BGRA",
    ) -> "PixelBuffer":
        """Describe a raw interleaved buffer (e.g. a locked platform pixel buffer)."""
        fmt = str(pixel_format).upper()
        if fmt not in PIXEL_FORMATS:
            raise InvalidFrameError(f"Unsupported pixel format: {pixel_format!r}")
        channels = PIXEL_FORMATS[fmt][0]
        if width <= 0 or height <= 0:
            raise InvalidFrameError(f"Invalid frame size {width}x{height}")
        row_bytes = width * channels
        stride = row_bytes if stride is None else int(stride)
        if stride < row_bytes:
            raise InvalidFrameError(f"Row stride {stride} is smaller than one row of pixels ({row_bytes})")
        needed = stride * (height - 1) + row_bytes
        raw = np.frombuffer(buffer, dtype=np.uint8)
        if raw.size < needed:
            raise InvalidFrameError(f"Buffer holds {raw.size} bytes, layout needs {needed}")
        data = np.lib.stride_tricks.as_strided(
            raw, shape=(height, width, channels), strides=(stride, channels, 1), writeable=False
        )
        return cls(data, fmt)

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def channels(self) -> int:
        return int(self.data.shape[2])

    @property
    def stride(self) -> int:
        return int(self.data.strides[0])

    def to_rgb(self) -> np.ndarray:
        """Return an owned, contiguous (H, W, 3) RGB copy of the pixels."""
        order = PIXEL_FORMATS[self.pixel_format][1]
        return np.ascontiguousarray(self.data[..., list(order)])
