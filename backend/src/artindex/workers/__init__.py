"""Background workers for async processing tasks."""

from artindex.workers.promotion_worker import run_promotion_worker

__all__ = ["run_promotion_worker"]
