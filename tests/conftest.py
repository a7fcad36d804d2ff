"""
Shared fixtures: in-memory workbooks built with openpyxl, default configuration
and a wired job layer over an in-memory store.
"""

import pytest

from mmr_processor.jobs import InMemoryJobStore, JobQueue, JobTracker, MMRService, MMRWorker
from mmr_processor.models.config_models import MMRConfig, QueueConfig
from mmr_processor.processors.mmr_processor import MMRProcessor

from sample_workbooks import (
    FINANCIAL_ROWS,
    OVERVIEW_ROWS,
    PHYSICAL_ROWS,
    SUMMARY_ROWS,
    workbook_bytes
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_workbook():
    """Factory returning .xlsx bytes for {sheet name: rows}"""
    return workbook_bytes


@pytest.fixture
def summary_workbook() -> bytes:
    return workbook_bytes({"Summary": SUMMARY_ROWS})


@pytest.fixture
def full_workbook() -> bytes:
    return workbook_bytes({
        "Summary": SUMMARY_ROWS,
        "Project Overview": OVERVIEW_ROWS,
        "Physical Progress": PHYSICAL_ROWS,
        "Financial Progress": FINANCIAL_ROWS,
    })


@pytest.fixture
def config() -> MMRConfig:
    return MMRConfig.get_default_config()


@pytest.fixture
def processor(config) -> MMRProcessor:
    return MMRProcessor(config)


@pytest.fixture
def tracker() -> JobTracker:
    return JobTracker(InMemoryJobStore())


@pytest.fixture
def fast_queue_config() -> QueueConfig:
    return QueueConfig(concurrency=2, backoff_delay=0.01, job_timeout=60, poll_interval=0.05)


@pytest.fixture
def job_layer(tracker, processor, fast_queue_config):
    """Tracker, worker, queue and service wired together; the queue is stopped afterwards"""
    worker = MMRWorker(tracker, processor, fast_queue_config)
    job_queue = JobQueue(worker.process_job, fast_queue_config)
    service = MMRService(tracker, job_queue, processor)
    yield service
    job_queue.stop(timeout=5)
