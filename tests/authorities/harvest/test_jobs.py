"""Tests for HarvestJob and HarvestRunner."""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest

from authorities.exceptions import HarvestCancelledError, PartialHarvestError
from authorities.harvest import HarvestJob, HarvestRunner, Harvester, JobStatus
from authorities.models import SourceKind
from authorities.store import AuthorityStore


@pytest.fixture
def store(tmp_path):
    store = AuthorityStore(tmp_path / "authorities.db")
    yield store
    store.close()


@pytest.fixture
def harvester(store):
    return Harvester(store, batch_size=1)


@pytest.fixture
def tsv_file(tmp_path):
    path = tmp_path / "mesh.tsv"
    path.write_text("1\tA\tNeoplasms\n2\tB\tNeurology\n", encoding="utf-8")
    return path


def test_job_runs_harvest_in_thread(harvester, store, tsv_file):
    job = HarvestJob.tsv(harvester, "mesh", [str(tsv_file)], prefix="http://m/")

    authority = asyncio.run(job.run())

    assert job.status is JobStatus.FINISHED
    assert job.result == authority
    assert job.kind is SourceKind.TSV
    assert [e.uri for e in store.entries_for(authority)] == ["http://m/1/", "http://m/2/"]


def test_existing_name_is_skipped(harvester, tsv_file):
    harvester.harvest_tsv("mesh", [str(tsv_file)])
    job = HarvestJob.tsv(harvester, "mesh", [str(tsv_file)])

    assert asyncio.run(job.run()) is None
    assert job.status is JobStatus.SKIPPED


def test_cancel_before_run(harvester, store, tsv_file):
    job = HarvestJob.tsv(harvester, "mesh", [str(tsv_file)])
    job.cancel()

    assert asyncio.run(job.run()) is None
    assert job.status is JobStatus.CANCELLED
    assert store.find_authority_by_name("mesh") is None


def test_cancelled_harvest_marks_job_cancelled():
    harvester = MagicMock()
    harvester.harvest_rdf.side_effect = HarvestCancelledError("lcsh", 10)
    job = HarvestJob.rdf(harvester, "lcsh", ["lcsh.nt"])

    with pytest.raises(HarvestCancelledError):
        asyncio.run(job.run())

    assert job.status is JobStatus.CANCELLED
    assert job.error.entries_written == 10
    assert harvester.harvest_rdf.call_args.kwargs["cancel_event"] is not None


def test_failed_harvest_marks_job_failed(harvester, tmp_path):
    job = HarvestJob.tsv(harvester, "broken", [str(tmp_path / "missing.tsv")])

    with pytest.raises(PartialHarvestError):
        asyncio.run(job.run())

    assert job.status is JobStatus.FAILED
    assert isinstance(job.error, PartialHarvestError)


class TestRunner:
    """Concurrent job execution."""

    def test_same_name_jobs_create_one_authority(self, harvester, store, tsv_file):
        runner = HarvestRunner()
        jobs = [HarvestJob.tsv(harvester, "mesh", [str(tsv_file)]) for _ in range(3)]

        results = asyncio.run(runner.run_all(jobs))

        assert len([r for r in results if r is not None]) == 1
        assert sorted(job.status.value for job in jobs) == ["finished", "skipped", "skipped"]
        assert store.list_authorities()[0].entry_count == 2

    def test_failures_returned_in_order(self, harvester, tsv_file, tmp_path):
        runner = HarvestRunner()
        jobs = [
            HarvestJob.tsv(harvester, "ok", [str(tsv_file)]),
            HarvestJob.tsv(harvester, "bad", [str(tmp_path / "missing.tsv")]),
        ]

        results = asyncio.run(runner.run_all(jobs))

        assert results[0].name == "ok"
        assert isinstance(results[1], PartialHarvestError)


def test_cancelled_task_waits_for_worker_thread():
    started = threading.Event()
    finished = []

    def slow_harvest(name, sources, cancel_event=None, **options):
        started.set()
        cancel_event.wait(5)
        time.sleep(0.05)
        finished.append(name)
        raise HarvestCancelledError(name, 3)

    harvester = MagicMock()
    harvester.harvest_tsv.side_effect = slow_harvest
    runner = HarvestRunner()
    first = HarvestJob.tsv(harvester, "mesh", ["mesh.tsv"])
    second = HarvestJob.tsv(harvester, "mesh", ["mesh.tsv"])

    async def scenario():
        task = asyncio.create_task(runner.submit(first))
        await asyncio.to_thread(started.wait, 5)
        queued = asyncio.create_task(runner.submit(second))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        # The worker has returned before the cancelled submit() let go of the lock
        assert finished == ["mesh"]
        queued.cancel()
        await asyncio.gather(queued, return_exceptions=True)

    asyncio.run(scenario())

    assert first.status is JobStatus.CANCELLED
    assert first.cancelled
    assert first.error.entries_written == 3
