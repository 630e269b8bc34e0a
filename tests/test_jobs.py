from pathlib import Path

import pytest

from cartcode.exceptions import TransferTimeoutError
from cartcode.transfer import JobKind, JobStage, TransferJob

ENCODE_PATH = [JobStage.SUBMITTING, JobStage.AWAITING_RESULT, JobStage.RENDERING, JobStage.DONE]
DECODE_PATH = [
    JobStage.SCANNING,
    JobStage.SUBMITTING,
    JobStage.AWAITING_RESULT,
    JobStage.RECONSTRUCTING,
    JobStage.DONE,
]


def _job(kind: JobKind) -> TransferJob:
    return TransferJob(kind=kind, source=Path("in"), destination=Path("out"))


@pytest.mark.parametrize(("kind", "path"), [(JobKind.ENCODE, ENCODE_PATH), (JobKind.DECODE, DECODE_PATH)])
def test_happy_path(kind, path):
    job = _job(kind)
    assert job.stage is JobStage.IDLE
    for stage in path:
        job.advance(stage)
    assert job.stage is JobStage.DONE
    assert job.finished
    assert [entry["stage"] for entry in job.timeline] == [stage.value for stage in path]
    assert job.timeline[0]["from"] == "idle"
    assert all(entry["elapsedMs"] >= 0 for entry in job.timeline)


@pytest.mark.parametrize(
    ("kind", "stage"),
    [
        (JobKind.ENCODE, JobStage.SCANNING),
        (JobKind.ENCODE, JobStage.RENDERING),
        (JobKind.DECODE, JobStage.SUBMITTING),
        (JobKind.DECODE, JobStage.DONE),
    ],
)
def test_skipping_stages_is_rejected(kind, stage):
    job = _job(kind)
    with pytest.raises(RuntimeError):
        job.advance(stage)
    assert job.stage is JobStage.IDLE
    assert job.timeline == []


def test_encode_never_reconstructs():
    job = _job(JobKind.ENCODE)
    for stage in ENCODE_PATH[:2]:
        job.advance(stage)
    with pytest.raises(RuntimeError):
        job.advance(JobStage.RECONSTRUCTING)


def test_fail_from_any_pending_stage():
    job = _job(JobKind.DECODE)
    job.advance(JobStage.SCANNING)
    job.advance(JobStage.SUBMITTING)
    job.advance(JobStage.AWAITING_RESULT)
    job.fail(TransferTimeoutError("Connection timeout"))
    assert job.stage is JobStage.FAILED
    assert job.error == "Timeout: Connection timeout"
    assert job.timeline[-1]["from"] == "awaiting_result"


def test_terminal_stages_are_final():
    job = _job(JobKind.ENCODE)
    job.fail(ValueError("boom"))
    assert job.error == "ValueError: boom"
    with pytest.raises(RuntimeError):
        job.fail(ValueError("again"))
    with pytest.raises(RuntimeError):
        job.advance(JobStage.SUBMITTING)


def test_jobs_get_unique_ids():
    assert _job(JobKind.ENCODE).id != _job(JobKind.ENCODE).id
