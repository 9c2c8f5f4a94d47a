from typing import Any, Dict

from seglive.utils.logger import get_logger


class HealthMonitor:
    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = get_logger(__name__)
        self.over_budget = 0

    @property
    def budget_ms(self) -> float:
        return float(self.config.get("watchdog_ms", 0) or 0)

    def check_latency(self, latency_ms: float, frame_id: int = -1) -> bool:
        budget = self.budget_ms
        if budget and latency_ms > budget:
            self.over_budget += 1
            self.logger.warning("Frame %d latency budget exceeded: %.2f ms > %.2f ms", frame_id, latency_ms, budget)
            return False
        return True
