"""
folio/shutdown.py

Shared shutdown flag for graceful termination of the worker pool.
Both main.py and worker.py import from here to avoid circular imports.
"""

import asyncio

_shutdown_event = asyncio.Event()


def set_shutdown():
    """Signal that the process is shutting down."""
    _shutdown_event.set()


def is_shutting_down() -> bool:
    """Check if the process is shutting down. Polled by worker loops."""
    return _shutdown_event.is_set()


def reset_shutdown():
    """Clear the flag (tests start several pools in one process)."""
    _shutdown_event.clear()
