"""
Custom Exceptions - Folio Pipeline Engine
folio/core/exceptions.py

Custom exception classes for repository and pipeline operations.
"""


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in database."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        self.message = message
        super().__init__(message)


class ForeignKeyViolationException(RepositoryException):
    """Foreign key constraint violation."""

    def __init__(self, message: str = "Foreign key constraint violation"):
        self.message = message
        super().__init__(message)


# =============================================================================
# PIPELINE EXCEPTIONS
# =============================================================================


class PipelineException(Exception):
    """Base exception for pipeline orchestration."""

    pass


class StepValidationError(PipelineException):
    """Malformed step input or unknown step kind. Never retried."""

    def __init__(self, message: str, step: str = ""):
        self.step = step
        self.message = message
        super().__init__(message)


class TransientStepError(PipelineException):
    """Retryable failure (provider timeout, storage contention)."""

    pass


class CollaboratorError(TransientStepError):
    """An external collaborator (LLM, image model, storage) failed or timed out."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")


class RunNotCancelableError(PipelineException):
    """Run is not in a state that allows cancellation."""

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Run {run_id} is {status} and cannot be canceled")
