"""
Pipeline Exceptions

Failure taxonomy for the boot-time pipeline:
- SeedDataError: fatal, the seed supply is empty or malformed
- StageNotReadyError / StageAlreadyPublishedError: ordering violations
- EntityNotFoundError: single-entity lookup for an unknown id

Degraded lookups (unknown partner, unknown store on an order) never raise;
the stage that detects them logs and substitutes a safe default.
"""

from typing import Iterable, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors"""


class SeedDataError(PipelineError):
    """Seed entity supply is empty or malformed; the pipeline must not start."""


class StageNotReadyError(PipelineError):
    """A stage result was read, or a stage was built, before its inputs existed."""

    def __init__(self, stage: str, missing: Optional[Iterable[str]] = None):
        self.stage = stage
        self.missing = list(missing or [])
        if self.missing:
            message = f"Stage '{stage}' requires {', '.join(self.missing)} to be published first"
        else:
            message = f"Stage '{stage}' has not been initialized"
        super().__init__(message)


class StageAlreadyPublishedError(PipelineError):
    """A stage slot is write-once for the lifetime of a context."""

    def __init__(self, stage: str, reason: str = "already published"):
        self.stage = stage
        super().__init__(f"Stage '{stage}' cannot be published: {reason}")


class EntityNotFoundError(PipelineError, LookupError):
    """Lookup of a single entity by an id absent from the derived set."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")
