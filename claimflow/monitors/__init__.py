# Monitors module - status-entry hooks and integration polling
from .process_monitor import ProcessMonitor
from .poller import PollHandle, Poller

__all__ = ["ProcessMonitor", "PollHandle", "Poller"]
