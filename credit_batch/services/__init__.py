"""credit_batch.services -- batch execution."""

from credit_batch.services.executor import GroupedBatchExecutor

__all__ = ["GroupedBatchExecutor"]
