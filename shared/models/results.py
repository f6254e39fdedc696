from pathlib import Path

from pydantic import BaseModel


class SyncResult(BaseModel):
    """Outcome of syncing one document."""
    document_id: str
    title: str
    record_path: Path
    partial_failures: list[str] = []
    thumbnail_path: Path | None = None


class BatchFailure(BaseModel):
    """One failed step of a batch. step is "sync", "generate" or "upload"."""
    document_id: str
    name: str
    step: str
    reason: str


class BatchSummary(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[BatchFailure] = []

    def is_success(self) -> bool:
        return not self.failures
