"""Reprise: a command-line client for Bitrise builds and pipelines.

The interesting part of the tool is its live-monitoring engine:
  - JobStatusPoller re-polls a job until it reaches a terminal state
  - LogTailer re-reads the full build log and surfaces only new lines
  - RetryPolicy retries transient (5xx) failures with exponential backoff
  - CompletionNotifier fires a best-effort desktop notification exactly once
  - MonitorOrchestrator composes them into wait / follow / watch modes
"""

__version__ = "0.3.0"
__author__ = "Reprise contributors"
__description__ = "Bitrise CLI with live build and pipeline monitoring"

from reprise.core.orchestrator import MonitorOrchestrator
from reprise.core.cancellation import CancellationToken

__all__ = ["MonitorOrchestrator", "CancellationToken", "__version__"]
