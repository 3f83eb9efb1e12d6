"""Monitoring engine: cancellation, retry, polling, tailing, orchestration."""
