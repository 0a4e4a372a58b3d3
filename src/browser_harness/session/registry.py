"""One session controller per automation profile."""

from __future__ import annotations

import atexit
import logging
import threading
from collections.abc import Callable
from typing import Optional

from ..config import HarnessConfig, ProfileConfig
from ..endpoint.base import AutomationEndpoint
from .controller import SessionController

LOGGER = logging.getLogger(__name__)

EndpointFactory = Callable[[ProfileConfig], AutomationEndpoint]


class SessionRegistry:
    """Create session controllers lazily and shut them all down on exit.

    Each controller is driven by a single thread; the registry itself may be
    shared between the threads running different profiles.
    """

    def __init__(
        self,
        config: HarnessConfig,
        endpoint_factory: EndpointFactory,
        *,
        shutdown_at_exit: bool = True,
    ) -> None:
        self._config = config
        self._endpoint_factory = endpoint_factory
        self._lock = threading.Lock()
        self._controllers: dict[str, SessionController] = {}
        self._at_exit = shutdown_at_exit
        if shutdown_at_exit:
            atexit.register(self.shutdown_all)

    @property
    def config(self) -> HarnessConfig:
        return self._config

    def controller(self, profile: Optional[str] = None) -> SessionController:
        """Return the controller of ``profile``, creating it on first use."""

        name = profile or self._config.default_profile
        with self._lock:
            controller = self._controllers.get(name)
            if controller is None:
                settings = self._config.profile(name)
                controller = SessionController(name, settings, self._endpoint_factory(settings))
                self._controllers[name] = controller
            return controller

    def profiles(self) -> list[str]:
        with self._lock:
            return list(self._controllers)

    def shutdown(self, profile: str) -> None:
        with self._lock:
            controller = self._controllers.pop(profile, None)
        if controller:
            controller.shutdown()

    def shutdown_all(self) -> None:
        with self._lock:
            controllers = list(self._controllers.values())
            self._controllers.clear()
            at_exit, self._at_exit = self._at_exit, False
        if at_exit:
            atexit.unregister(self.shutdown_all)
        for controller in controllers:
            try:
                controller.shutdown()
            except Exception:  # pragma: no cover
                LOGGER.exception("Failed to shut down browser for profile %s", controller.profile)
