"""Process-wide follower state shared by the HTTP routes.

One `FollowerState` holds the effective settings and the follow engine; the
module-level functions are what FastAPI dependencies and routes call.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from follower.api.services.engine import FollowEngine
from follower.core.config.settings import FollowerSettings, load_settings, settings_to_dict

logger = logging.getLogger(__name__)


class FollowerState:
    """Settings plus the (at most one) follow engine built from them."""

    def __init__(self) -> None:
        self.settings: FollowerSettings | None = None
        self.engine: FollowEngine | None = None
        self.lock = RLock()

    def current_settings(self) -> FollowerSettings:
        with self.lock:
            if self.settings is None:
                self.settings = load_settings()
            return self.settings

    def apply(self, patch: dict[str, Any] | None) -> FollowerSettings:
        """Re-read the config file, apply `patch` on top, and restart the engine.

        An engine that exists is replaced by one built from the new settings;
        when none exists, none is started.
        """

        with self.lock:
            base = load_settings()
            if patch:
                base = FollowerSettings(**{**settings_to_dict(base), **patch})
            self.settings = base
            if self.engine is not None:
                logger.info("Settings changed, restarting follow engine")
                self.engine.stop()
                self.engine = FollowEngine(base)
                self.engine.start()
            return base

    def running_engine(self) -> FollowEngine:
        with self.lock:
            if self.engine is None:
                self.engine = FollowEngine(self.current_settings())
                self.engine.start()
            return self.engine

    def shutdown(self) -> None:
        with self.lock:
            if self.engine is not None:
                self.engine.stop()
                self.engine = None


_state = FollowerState()


def get_settings() -> FollowerSettings:
    """Return the effective settings, loading them on first use."""

    return _state.current_settings()


def reload_settings(data: dict[str, Any] | None = None) -> FollowerSettings:
    return _state.apply(data)


def get_engine() -> FollowEngine:
    """FastAPI dependency: the follow engine, started on first use."""

    return _state.running_engine()


def stop_engine() -> None:
    _state.shutdown()
