"""
Pipelines Package - Folio Pipeline Engine
folio/pipelines/

    queue.py         Redis job queue with leases and delayed retries
    orchestrator.py  run requests -> run records + queued jobs
    executor.py      one attempt of one job, status transitions, retry policy
    worker.py        worker pool, heartbeats, stalled-job reaper
    registry.py      step kind -> handler
    steps/           the seven step handlers
"""
