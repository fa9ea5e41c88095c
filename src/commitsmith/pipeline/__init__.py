"""Batch processing of pending changes into per-file commits."""

from .batch_orchestrator import BatchCommitOrchestrator, chunked  # noqa: F401
