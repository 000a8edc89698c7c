"""
Queue gateway service.

Fronts a hosted application with the proof-of-wait queue. Run standalone
(``python -m service_queue.app.main``) with a placeholder root page, or
mount the real hosted ASGI application behind the gateway with
``mount_downstream``.
"""

import time
from typing import Dict, Optional

from shared.base_service import BaseService
from shared.config import GatewaySettings
from service_queue.app.domain.gateway import QueueGateway
from service_queue.app.domain.middleware import install_gateway
from service_queue.app.stores import create_store


class QueueGatewayService(BaseService):
    """Queue gateway service implementation."""

    def __init__(self, settings: Optional[GatewaySettings] = None, clock=None):
        self._clock = clock
        super().__init__(settings)

        @self.app.on_event("startup")
        async def _startup():
            await self.gateway.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.gateway.stop()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    def _setup_components(self):
        clock = self._clock or time.time
        self.gateway = QueueGateway(
            self.config,
            store=create_store(self.config, clock=clock),
            metrics=self.metrics,
            clock=clock,
        )

        install_gateway(self.app, self.gateway)

        @self.app.get("/")
        async def root():
            """Placeholder for the hosted application."""
            return {
                "service": self.service_name,
                "status": "admitted",
                "version": "1.0.0",
            }

        self._placeholder_route = self.app.router.routes[-1]

    def mount_downstream(self, downstream_app, path: str = "/"):
        """Serve ``downstream_app`` behind the gateway.

        Mounting at the root replaces the placeholder ``GET /`` page.
        """
        if path.rstrip("/") == "" and self._placeholder_route in self.app.router.routes:
            self.app.router.routes.remove(self._placeholder_route)
        self.app.mount(path, downstream_app)

    async def _check_dependencies(self) -> Dict[str, str]:
        store_ok = await self.gateway.store.ping()
        return {"store": "ok" if store_ok else "error"}


def create_app(settings: Optional[GatewaySettings] = None):
    """Create FastAPI application."""
    service = QueueGatewayService(settings)
    return service.app


if __name__ == "__main__":
    service = QueueGatewayService()
    service.run()
