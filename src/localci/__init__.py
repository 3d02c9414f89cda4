from .config import RunConfig
from .errors import DuplicateStepError, ModeConflictError, PipelineLoadError
from .model import Mode, Step, StepResult
from .runner import Runner, load_pipeline, run_pipeline

__all__ = [
    "RunConfig",
    "Runner",
    "run_pipeline",
    "load_pipeline",
    "Mode",
    "Step",
    "StepResult",
    "DuplicateStepError",
    "ModeConflictError",
    "PipelineLoadError",
]
