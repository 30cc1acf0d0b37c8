"""Adapter executors."""

from .base import AdapterRun, RetryPolicy, run_adapter_with_retry, run_adapters_concurrently

__all__ = ["AdapterRun", "RetryPolicy", "run_adapter_with_retry", "run_adapters_concurrently"]
