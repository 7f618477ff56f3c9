"""
Outcome of a single provisioning run.
"""
from enum import Enum


class SetupResult(str, Enum):
    """
    Terminal state of an orchestrator operation.
    Only reflected in the process exit status and the printed messages.
    """
    SUCCESS = "success"
    DEGRADED = "degraded"  # Stack usable, model pull did not complete
    PREREQUISITE_MISSING = "prerequisite_missing"
    START_FAILURE = "start_failure"
    READINESS_TIMEOUT = "readiness_timeout"
    MODEL_PULL_FAILURE = "model_pull_failure"
    VERIFICATION_MISMATCH = "verification_mismatch"
    CONFIG_ERROR = "config_error"
    ALREADY_RUNNING = "already_running"

    @property
    def ok(self) -> bool:
        return self in (SetupResult.SUCCESS, SetupResult.DEGRADED)

    @property
    def exit_code(self) -> int:
        """
        Process exit status for this result.
        """
        return 0 if self.ok else 1
