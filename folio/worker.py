"""
Worker entry point - Folio Pipeline Engine
folio/worker.py

Runs the step worker pool in its own process:

    python -m folio.worker

Any number of these processes may share one queue. SIGINT/SIGTERM set the
shutdown flag; workers finish their current job and exit.
"""
import asyncio
import signal

import structlog
from dotenv import load_dotenv

load_dotenv()

from folio.config import settings
from folio.core.dependencies import build_executor, get_job_queue, get_pipeline_run_repository
from folio.core.logging import configure_logging
from folio.pipelines.worker import WorkerPool
from folio.shutdown import set_shutdown

logger = structlog.get_logger(__name__)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    def _signal_handler(sig):
        logger.warning("shutdown_signal_received", signal=sig.name)
        set_shutdown()

    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler, sig)
    except NotImplementedError:
        # Windows: no add_signal_handler
        signal.signal(signal.SIGINT, lambda signum, frame: set_shutdown())


async def main() -> None:
    configure_logging()
    _install_signal_handlers(asyncio.get_running_loop())

    queue = get_job_queue()
    pool = WorkerPool(queue, build_executor(), get_pipeline_run_repository(), settings=settings)
    try:
        await pool.run()
    finally:
        await queue.close()


def main_sync() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    main_sync()
