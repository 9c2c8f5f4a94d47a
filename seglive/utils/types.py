from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np


@dataclass
class FramePacket:
    frame: object
    timestamp: float


@dataclass
class SegmentationResult:
    frame_id: int
    timestamp: float
    mask: Optional[np.ndarray] = None
    latency_ms: float = 0.0
    dropped: bool = False
    stages_ms: Dict[str, float] = field(default_factory=dict)
