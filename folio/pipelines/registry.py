"""
Step registry
folio/pipelines/registry.py

Maps each step kind to the async handler that executes it.
"""
from typing import Awaitable, Callable, Dict, Iterable

from folio.core.exceptions import StepValidationError
from folio.models.enumerations import StepKind
from folio.models.pipeline import StepOutput

StepHandler = Callable[..., Awaitable[StepOutput]]


class StepRegistry:
    def __init__(self):
        self._handlers: Dict[StepKind, StepHandler] = {}

    def register(self, kind: StepKind, handler: StepHandler) -> None:
        if kind in self._handlers:
            raise ValueError(f"Handler already registered for step {kind.value}")
        self._handlers[kind] = handler

    def get(self, kind: StepKind) -> StepHandler:
        try:
            return self._handlers[kind]
        except KeyError:
            raise StepValidationError(f"No handler registered for step {kind}", step=str(kind))

    def kinds(self) -> Iterable[StepKind]:
        return tuple(self._handlers)

    def __contains__(self, kind: StepKind) -> bool:
        return kind in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
