"""Protocol engine for one TS130F device.

CurtainHub wires the frame router, the endpoint sessions and the command
builder to two collaborators supplied by the host:

    transport.send(batch)                    outbound, fire and forget
    notify(endpoint, field, value)           state-change notifications

Inbound frames enter through ``on_frame_received``. Everything here is
synchronous and non-blocking; timing lives in the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Protocol

from .commands import Batch
from .const import DEFAULT_ENDPOINTS, INTER_FRAME_DELAY_MS
from .logtools import kv
from .router import FrameRouter, MalformedFrameError, RoutedFrame
from .session import OPERATIONS, EndpointSession, SessionTable

_LOGGER = logging.getLogger(__name__)

Notifier = Callable[[int, str, Any], None]


class Transport(Protocol):
    """Outbound collaborator: executes a batch in order."""

    def send(self, batch: Batch) -> None: ...


class CurtainHub:
    """Routes inbound frames to sessions and sends session batches."""

    def __init__(
        self,
        transport: Transport,
        notify: Notifier,
        endpoints: Iterable[int] = DEFAULT_ENDPOINTS,
        delay_ms: int = INTER_FRAME_DELAY_MS,
    ) -> None:
        self._transport = transport
        self._notify = notify
        self._endpoints: set[int] = set(endpoints)
        self._sessions = SessionTable(delay_ms)
        self._router = FrameRouter(self.enumerate_endpoints)
        for endpoint in sorted(self._endpoints):
            self._sessions.recognize(endpoint)

    def enumerate_endpoints(self) -> set[int]:
        return set(self._endpoints)

    def session(self, endpoint: int) -> EndpointSession | None:
        return self._sessions.get(endpoint)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def on_frame_received(self, raw: Mapping[str, Any]) -> None:
        """Handle one inbound frame. Never raises."""
        try:
            result = self._router.route(raw)
        except MalformedFrameError as err:
            _LOGGER.warning("Dropping malformed frame: %s", err)
            return
        except Exception:
            _LOGGER.exception("Unexpected error routing frame %s", raw)
            return

        if not isinstance(result, RoutedFrame):
            return

        session = self._sessions.recognize(result.endpoint)
        changes = session.apply(result.descriptor)
        for change in changes:
            try:
                self._notify(change.endpoint, change.field, change.value)
            except Exception:
                _LOGGER.exception(
                    "State change notifier failed for endpoint %s field %s",
                    change.endpoint,
                    change.field,
                )

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def issue(self, endpoint: int, operation: str, *args: Any) -> bool:
        """Build the batch for a session operation and send it.

        Returns:
            True if a batch was handed to the transport, False when the
            command was dropped (unknown endpoint, missing session or an
            empty batch)

        Raises:
            ValueError: If ``operation`` is not a session operation
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")

        if endpoint not in self._endpoints:
            _LOGGER.warning("Dropping %s for unknown endpoint %s", operation, endpoint)
            return False
        session = self._sessions.get(endpoint)
        if session is None:
            _LOGGER.warning(
                "Dropping %s: no session for endpoint %s", operation, endpoint
            )
            return False

        batch: Batch = getattr(session, operation)(*args)
        if not batch:
            _LOGGER.debug("Endpoint %s: %s produced no frames", endpoint, operation)
            return False

        kv(
            _LOGGER,
            logging.DEBUG,
            "Sending batch",
            endpoint=endpoint,
            frames=len(batch.frames),
            operation=operation,
        )
        self._transport.send(batch)
        return True

    def issue_all(self, operation: str, *args: Any) -> int:
        """Issue an operation on every known endpoint; returns batches sent."""
        return sum(
            1
            for endpoint in sorted(self._endpoints)
            if self.issue(endpoint, operation, *args)
        )

    def refresh_all(self) -> int:
        return self.issue_all("refresh")

    def configure(self) -> int:
        """Configure position reporting and read current state everywhere."""
        sent = self.issue_all("configure_reporting")
        sent += self.refresh_all()
        return sent

    def reinitialize(self, endpoint: int) -> None:
        session = self._sessions.get(endpoint)
        if session is None:
            _LOGGER.warning("Cannot reinitialize unknown endpoint %s", endpoint)
            return
        session.reset()
        _LOGGER.debug("Endpoint %s reinitialized", endpoint)

    def snapshot(self) -> dict[str, Any]:
        return {
            "endpoints": sorted(self._endpoints),
            "sessions": {
                str(session.endpoint): session.as_dict() for session in self._sessions
            },
        }
