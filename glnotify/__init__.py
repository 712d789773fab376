"""glnotify: GitLab pipeline notifications from a WebSocket event stream."""
from __future__ import annotations

__version__ = "0.1.0"
