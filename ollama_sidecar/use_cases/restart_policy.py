from typing import Optional

from ollama_sidecar.entities.activity_state import ActivityState

DEFAULT_IDLE_THRESHOLD = 90.0


class RestartPolicy:
    """
    Decides whether the server should be recycled before an inference call.

    The server is restarted after a long idle gap or when a different model
    is requested. The first call, with no recorded activity, never triggers a
    restart by itself. Pure: no I/O, no mutation.
    """

    def __init__(self, idle_threshold: float = DEFAULT_IDLE_THRESHOLD):
        self.idle_threshold = idle_threshold

    def restart_reason(self, requested_model: str, activity: ActivityState, now: Optional[float] = None) -> Optional[str]:
        """Return why a restart is needed, or None if it is not."""
        return restart_reason(requested_model, activity, self.idle_threshold, now)

    def should_restart(self, requested_model: str, activity: ActivityState, now: Optional[float] = None) -> bool:
        return self.restart_reason(requested_model, activity, now) is not None


def restart_reason(
    requested_model: str,
    activity: ActivityState,
    idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
    now: Optional[float] = None,
) -> Optional[str]:
    idle = activity.idle_seconds(now)
    if idle is not None and idle >= idle_threshold:
        return f"it has been {idle:.0f} seconds since the last inference (threshold {idle_threshold:.0f}s)"
    if activity.last_inference_model is not None and activity.last_inference_model != requested_model:
        return f"the model changed from {activity.last_inference_model} to {requested_model}"
    return None


def should_restart(
    requested_model: str,
    activity: ActivityState,
    idle_threshold: float = DEFAULT_IDLE_THRESHOLD,
    now: Optional[float] = None,
) -> bool:
    return restart_reason(requested_model, activity, idle_threshold, now) is not None
