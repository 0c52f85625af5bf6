from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


@dataclass
class ActivityState:
    """Time and model of the most recent inference call dispatched to the server.

    One instance is shared by every pipeline that talks to the same server; it
    is never reset while the client lives.
    """

    last_inference_time: Optional[float] = None
    last_inference_model: Optional[str] = None

    def record(self, model: str, now: Optional[float] = None) -> None:
        """Stamp an inference call. A stamp older than the recorded one is ignored."""
        now = time.time() if now is None else now
        if self.last_inference_time is not None and now < self.last_inference_time:
            return
        self.last_inference_time = now
        self.last_inference_model = model

    def idle_seconds(self, now: Optional[float] = None) -> Optional[float]:
        if self.last_inference_time is None:
            return None
        now = time.time() if now is None else now
        return now - self.last_inference_time
