import asyncio
import logging
import signal
import socket
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Iterable, Optional, Protocol, Union
from uuid import uuid4

logger = logging.getLogger(__name__)

Handler = Callable[[dict], Coroutine[Any, Any, dict]]


class Processor(Protocol):
    async def run(self, payload: dict) -> dict: ...


class JobBackend(Protocol):
    """What the worker needs from a job store: the claim protocol and outcome reporting."""

    async def claim_next(self, job_types: Optional[Iterable[str]] = None, worker_id: Optional[str] = None) -> Optional[Any]: ...
    async def complete(self, job_id: Any, result: Optional[dict] = None) -> bool: ...
    async def fail(self, job_id: Any, error_message: str) -> bool: ...


class UnknownJobTypeError(LookupError):
    def __init__(self, job_type: str):
        super().__init__(f"No processor registered for job type '{job_type}'")
        self.job_type = job_type


class ProcessorRegistry:
    """Maps one job_type string to one processor."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}

    def register(self, job_type: str, processor: Union[Processor, Handler]) -> None:
        if job_type in self._handlers:
            raise ValueError(f"Processor already registered for job type '{job_type}'")
        handler = processor.run if hasattr(processor, "run") else processor
        self._handlers[job_type] = handler

    def get(self, job_type: str) -> Handler:
        try:
            return self._handlers[job_type]
        except KeyError:
            raise UnknownJobTypeError(job_type) from None

    def job_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, job_type: str) -> bool:
        return job_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


@dataclass
class TickResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: bool = False


class PollWorker:
    """
    Timer-driven loop: every `interval` seconds claim up to `batch_size`
    jobs, run each through its processor, and report complete/fail.

    At most one tick runs per instance. A tick that fires while the previous
    one is still working returns immediately with `skipped=True`. There is
    no timeout on processors: a hung processor holds the flag and every
    later tick is skipped until it returns.

    Processor exceptions never escape; they become a `fail` call.
    """

    def __init__(
        self,
        backend: JobBackend,
        registry: ProcessorRegistry,
        interval: float = 10.0,
        batch_size: int = 10,
        worker_id: Optional[str] = None,
    ):
        self.backend = backend
        self.registry = registry
        self.interval = interval
        self.batch_size = batch_size
        self.worker_id = worker_id or f"{socket.gethostname()}-{uuid4().hex[:8]}"
        self.running = False
        self._processing = False
        self._task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def tick(self) -> TickResult:
        if self._processing:
            logger.debug("Worker %s tick skipped: previous tick still running", self.worker_id)
            return TickResult(skipped=True)

        self._processing = True
        result = TickResult()
        try:
            job_types = self.registry.job_types()
            if not job_types:
                logger.warning("Worker %s has no processors registered; nothing to claim", self.worker_id)
                return result
            for _ in range(self.batch_size):
                job = await self.backend.claim_next(job_types, self.worker_id)
                if job is None:
                    break

                result.processed += 1
                if await self.process_job(job):
                    result.succeeded += 1
                else:
                    result.failed += 1

                if not self.running and self._task is not None:
                    # stop() was called mid-batch; finish this job only
                    break
        finally:
            self._processing = False

        if result.processed:
            logger.info(
                "Worker %s processed %s jobs: %s succeeded, %s failed",
                self.worker_id, result.processed, result.succeeded, result.failed,
            )
        return result

    async def process_job(self, job) -> bool:
        try:
            handler = self.registry.get(job.job_type)
            outcome = await handler(job.payload)
        except Exception as e:
            error_msg = f"{type(e).__name__}: {str(e)}"
            logger.error("Job %s (%s) failed: %s", job.id, job.job_type, error_msg)
            reported = await self.backend.fail(job.id, error_msg)
            if not reported:
                logger.error("Failed to report failure for job %s", job.id)
            return False

        try:
            completed = await self.backend.complete(job.id, outcome)
        except Exception as e:
            error_msg = f"Could not record result: {type(e).__name__}: {str(e)}"
            logger.error("Job %s (%s) completion failed: %s", job.id, job.job_type, error_msg)
            if not await self.backend.fail(job.id, error_msg):
                logger.error("Failed to report failure for job %s", job.id)
            return False

        if completed:
            logger.info("Job %s completed successfully", job.id)
        else:
            logger.error("Job %s processor succeeded but completion was not recorded", job.id)
        return completed

    async def start(self):
        if self._task is not None:
            return
        self.running = True
        self._shutdown_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info("Worker %s started (types: %s)", self.worker_id, ", ".join(self.registry.job_types()))

    async def stop(self):
        """Stops the timer. An in-flight job is allowed to finish; claimed jobs are not released."""
        self.running = False
        self._shutdown_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Worker %s stopped", self.worker_id)

    async def _loop(self):
        while self.running:
            try:
                await self.tick()
            except Exception as e:
                logger.exception("Error in poll loop for worker %s: %s", self.worker_id, e)

            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def run_forever(self):
        loop = asyncio.get_running_loop()
        stop_requested = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_requested.set)
            except NotImplementedError:
                # Windows support
                pass

        await self.start()
        await stop_requested.wait()
        await self.stop()
