"""Encode and decode pipelines for cartridge transfers."""

from cartcode.transfer.jobs import JobKind, JobStage, TransferJob
from cartcode.transfer.orchestrator import TransferOrchestrator, TransferResult

__all__ = ["JobKind", "JobStage", "TransferJob", "TransferOrchestrator", "TransferResult"]
