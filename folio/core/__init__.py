"""
Core Package - Folio Pipeline Engine
folio/core/__init__.py

Core infrastructure: exceptions, logging. FastAPI dependency getters live in
folio.core.dependencies and are imported from there directly.
"""

from folio.core.exceptions import (
    CollaboratorError,
    DatabaseConnectionException,
    DuplicateEntityException,
    EntityNotFoundException,
    ForeignKeyViolationException,
    PipelineException,
    RepositoryException,
    RunNotCancelableError,
    StepValidationError,
    TransientStepError,
)

__all__ = [
    # Repository exceptions
    "DatabaseConnectionException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "ForeignKeyViolationException",
    "RepositoryException",
    # Pipeline exceptions
    "CollaboratorError",
    "PipelineException",
    "RunNotCancelableError",
    "StepValidationError",
    "TransientStepError",
]
