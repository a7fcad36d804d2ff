"""
Tests for upload validation and job submission
"""

import pytest

from mmr_processor.exceptions import (
    BatchSizeError,
    FileValidationError,
    JobAccessDeniedError,
    JobNotFoundError
)
from mmr_processor.models.config_models import IngressConfig
from mmr_processor.models.job_models import FileSubmission, JobStatus


def submission(name: str = "report.xlsx", content: bytes = b"PK-data", **kwargs) -> FileSubmission:
    return FileSubmission(file_name=name, content=content, **kwargs)


class TestValidateSubmission:
    """Uploads are rejected before any job exists"""

    def test_accepts_supported_file(self, job_layer):
        assert job_layer.validate_submission(submission()) == 7

    @pytest.mark.parametrize("name", ["report.pdf", "report", "notes.txt"])
    def test_rejects_extension(self, job_layer, name):
        with pytest.raises(FileValidationError):
            job_layer.validate_submission(submission(name))

    def test_extension_is_case_insensitive(self, job_layer):
        assert job_layer.validate_submission(submission("REPORT.XLSX"))

    def test_rejects_empty_file(self, job_layer):
        with pytest.raises(FileValidationError, match="empty"):
            job_layer.validate_submission(submission(content=b""))

    def test_rejects_oversize_file(self, job_layer):
        job_layer.config = IngressConfig(max_file_size=4)
        with pytest.raises(FileValidationError):
            job_layer.validate_submission(submission(content=b"12345"))

    def test_rejects_missing_payload(self, job_layer):
        with pytest.raises(FileValidationError, match="No file provided"):
            job_layer.validate_submission(FileSubmission(file_name="report.xlsx"))

    def test_file_path(self, job_layer, tmp_path):
        path = tmp_path / "report.xlsx"
        path.write_bytes(b"abc")
        assert job_layer.validate_submission(FileSubmission(file_name="report.xlsx", file_path=str(path))) == 3

        with pytest.raises(FileValidationError):
            job_layer.validate_submission(FileSubmission(file_name="report.xlsx",
                                                         file_path=str(tmp_path / "missing.xlsx")))


class TestSubmission:
    def test_process_file_creates_pending_job(self, job_layer):
        job = job_layer.process_file("user-1", submission())

        assert job.status == JobStatus.PENDING
        assert job.file_size == 7
        assert job_layer.job_queue.outstanding == 1
        assert job_layer.get_job_status(job.job_id, "user-1").file_name == "report.xlsx"

    def test_rejected_file_creates_no_job(self, job_layer):
        with pytest.raises(FileValidationError):
            job_layer.process_file("user-1", submission(content=b""))
        assert job_layer.get_user_jobs("user-1") == []

    def test_failed_enqueue_rolls_back(self, job_layer, monkeypatch):
        def broken(data):
            raise RuntimeError("queue unavailable")

        monkeypatch.setattr(job_layer.job_queue, "add_job", broken)
        with pytest.raises(RuntimeError):
            job_layer.process_file("user-1", submission())
        assert job_layer.get_user_jobs("user-1") == []

    def test_batch(self, job_layer):
        jobs = job_layer.process_batch("user-1", [submission("a.xlsx"), submission("b.csv")])

        assert [job.file_name for job in jobs] == ["a.xlsx", "b.csv"]
        assert len(job_layer.get_user_jobs("user-1")) == 2

    def test_store_failure_mid_batch_rolls_back(self, job_layer, monkeypatch):
        create_job = job_layer.tracker.create_job
        calls = []

        def failing_second_create(*args):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("job store unavailable")
            return create_job(*args)

        monkeypatch.setattr(job_layer.tracker, "create_job", failing_second_create)
        with pytest.raises(RuntimeError):
            job_layer.process_batch("user-1", [submission(f"f{index}.xlsx") for index in range(3)])

        assert job_layer.get_user_jobs("user-1") == []
        assert job_layer.job_queue.outstanding == 0

    def test_oversize_batch_creates_no_jobs(self, job_layer):
        with pytest.raises(BatchSizeError):
            job_layer.process_batch("user-1", [submission() for _ in range(11)])
        assert job_layer.get_user_jobs("user-1") == []

    def test_one_invalid_file_rejects_batch(self, job_layer):
        with pytest.raises(FileValidationError):
            job_layer.process_batch("user-1", [submission("a.xlsx"), submission("b.pdf")])
        assert job_layer.get_user_jobs("user-1") == []

    def test_empty_batch(self, job_layer):
        with pytest.raises(FileValidationError):
            job_layer.process_batch("user-1", [])

    def test_parse_now(self, job_layer, summary_workbook):
        result = job_layer.parse_now(submission(content=summary_workbook))

        assert result.success
        assert job_layer.get_user_jobs("user-1") == []


class TestOwnership:
    def test_other_user_cannot_read_or_cancel(self, job_layer):
        job = job_layer.process_file("user-1", submission())

        with pytest.raises(JobAccessDeniedError):
            job_layer.get_job_status(job.job_id, "user-2")
        with pytest.raises(JobAccessDeniedError):
            job_layer.cancel_job(job.job_id, "user-2")
        with pytest.raises(JobAccessDeniedError):
            job_layer.delete_job(job.job_id, "user-2")

    def test_cancel_and_delete(self, job_layer):
        job = job_layer.process_file("user-1", submission())

        assert job_layer.cancel_job(job.job_id, "user-1").status == JobStatus.CANCELLED
        assert [j.job_id for j in job_layer.get_jobs_by_status("user-1", JobStatus.CANCELLED)] == [job.job_id]

        job_layer.delete_job(job.job_id, "user-1")
        with pytest.raises(JobNotFoundError):
            job_layer.get_job_status(job.job_id, "user-1")
