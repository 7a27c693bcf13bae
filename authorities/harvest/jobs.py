"""Asynchronous, cancellable harvest jobs.

Harvests run in a worker thread via asyncio.to_thread so an event loop (a
web worker or a batch runner) stays responsive. Cancellation is cooperative:
the harvester checks the job's cancel flag between sources and batches.

HarvestRunner serializes jobs that target the same authority name and lets
jobs for different names run concurrently.

Usage:
------
runner = HarvestRunner()
jobs = [
    HarvestJob.rdf(harvester, "lcsh", ["lcsh.nt"]),
    HarvestJob.tsv(harvester, "mesh", ["mesh.tsv"], prefix="https://id.nlm.nih.gov/mesh/"),
]
results = asyncio.run(runner.run_all(jobs))
"""

import asyncio
import threading
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from authorities.exceptions import HarvestCancelledError
from authorities.harvest.harvester import Harvester
from authorities.models import Authority, SourceKind
from authorities.utils.logger import LoggerManager

logger = LoggerManager.get_logger(__name__)


class JobStatus(str, Enum):
    """Lifecycle of a harvest job."""
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"     # Authority created and filled
    SKIPPED = "skipped"       # Name already existed
    FAILED = "failed"
    CANCELLED = "cancelled"


class HarvestJob:
    """One harvest call, runnable on an event loop.

    Attributes:
        name: Authority name the job creates
        kind: RDF or TSV
        status: Current JobStatus
        result: The created Authority once finished
        error: The exception if the job failed or was cancelled
    """

    def __init__(
        self,
        harvester: Harvester,
        name: str,
        sources: Sequence[str],
        kind: SourceKind,
        options: Optional[Dict[str, Any]] = None,
    ):
        self.harvester = harvester
        self.name = name
        self.sources = list(sources)
        self.kind = SourceKind(kind)
        self.options = dict(options or {})
        self.status = JobStatus.PENDING
        self.result: Optional[Authority] = None
        self.error: Optional[BaseException] = None
        self._cancel = threading.Event()

    @classmethod
    def rdf(cls, harvester: Harvester, name: str, sources: Sequence[str], **options) -> "HarvestJob":
        return cls(harvester, name, sources, SourceKind.RDF, options)

    @classmethod
    def tsv(cls, harvester: Harvester, name: str, sources: Sequence[str], **options) -> "HarvestJob":
        return cls(harvester, name, sources, SourceKind.TSV, options)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Ask the job to stop at its next batch boundary."""
        self._cancel.set()

    def _call(self) -> Optional[Authority]:
        if self.kind is SourceKind.RDF:
            return self.harvester.harvest_rdf(
                self.name, self.sources, cancel_event=self._cancel, **self.options
            )
        return self.harvester.harvest_tsv(
            self.name, self.sources, cancel_event=self._cancel, **self.options
        )

    async def _drain(self, worker: "asyncio.Future[Optional[Authority]]") -> None:
        """Wait for a cancelled job's worker thread and record how it ended."""
        try:
            self.result = await worker
        except Exception as e:
            self.error = e
            logger.debug(
                "harvest.job.drained",
                extra={"extra_data": {"authority": self.name, "error": str(e)}},
            )

    async def run(self) -> Optional[Authority]:
        """Run the harvest in a worker thread.

        Returns:
            The created Authority, or None if the name already existed

        Raises:
            HarvestCancelledError: If the job was cancelled mid-harvest
            PartialHarvestError: If the harvest failed mid-way
        """
        if self.cancelled:
            self.status = JobStatus.CANCELLED
            return None

        self.status = JobStatus.RUNNING
        logger.debug("harvest.job.started", extra={"extra_data": {"authority": self.name}})
        worker = asyncio.ensure_future(asyncio.to_thread(self._call))
        try:
            self.result = await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The thread stops at its next batch boundary; wait for it so the
            # caller (and the runner's per-name lock) outlives the writes
            self.cancel()
            self.status = JobStatus.CANCELLED
            await self._drain(worker)
            raise
        except HarvestCancelledError as e:
            self.error = e
            self.status = JobStatus.CANCELLED
            raise
        except Exception as e:
            self.error = e
            self.status = JobStatus.FAILED
            raise

        self.status = JobStatus.FINISHED if self.result is not None else JobStatus.SKIPPED
        logger.debug(
            "harvest.job.done",
            extra={"extra_data": {"authority": self.name, "status": self.status.value}},
        )
        return self.result


class HarvestRunner:
    """Runs harvest jobs, one at a time per authority name."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    async def submit(self, job: HarvestJob) -> Optional[Authority]:
        """Run `job` once no other job for the same name is running."""
        async with self._lock_for(job.name):
            return await job.run()

    async def run_all(self, jobs: Sequence[HarvestJob]) -> List[Any]:
        """Run jobs concurrently across names.

        Returns:
            One item per job, in order: the Authority, None for a skipped
            name, or the exception the job raised
        """
        return await asyncio.gather(
            *(self.submit(job) for job in jobs), return_exceptions=True
        )
