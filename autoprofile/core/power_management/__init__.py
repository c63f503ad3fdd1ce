from __future__ import annotations

from .manager import PolicyDaemon, default_watcher_factory

__all__ = ["PolicyDaemon", "default_watcher_factory"]
