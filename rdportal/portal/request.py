"""
Request/response correlation for portal requests.

Portal methods such as CreateSession, SelectDevices and Start reply at once
with the object path of a Request. The outcome arrives later as a
`org.freedesktop.portal.Request::Response(u response, a{sv} results)` signal
emitted on that path. `RequestCorrelator` keeps one signal subscription for
every path and resolves a single future per registered request path.

A registration lives only until its response arrives or it is discarded.
Paths that were discarded or timed out are remembered for a while so the
portal's late answer is dropped instead of being handed to a later request
that reuses the same handle token.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Callable, Optional, Protocol, Type, TypeVar

from rdportal.common.errors import BrokerError, PortalError, ProtocolError, StateError
from rdportal.common.settings import settings
from rdportal.common.types import ResponseType
from rdportal.portal.options import BasicResponse
from rdportal.portal.transport import PortalTransport

logger = logging.getLogger(__name__)

ResponsePayload = tuple[int, dict[str, Any]]
ResolveCallback = Callable[["asyncio.Future[ResponsePayload]"], None]


class ResponseRecord(Protocol):
    @classmethod
    def vardict_parse(cls, results: dict[str, Any]) -> Any: ...


T = TypeVar("T", bound=ResponseRecord)

_DEFAULT_TIMEOUT = object()


def _history_record(history: "OrderedDict[str, None]", path: str) -> None:
    """Append to a bounded path history, dropping the oldest entries."""
    history[path] = None
    history.move_to_end(path)
    while len(history) > settings.RESOLVED_HISTORY_LIMIT:
        history.popitem(last=False)


class RequestCorrelator:
    """Maps request object paths to single-resolution futures."""

    def __init__(self, transport: PortalTransport) -> None:
        """
        Initialize correlator.

        Args:
            transport: Bus connection delivering Response signals.
        """
        self._transport: PortalTransport = transport
        self._pending: dict[
            str, tuple[asyncio.Future[ResponsePayload], Optional[ResolveCallback]]
        ] = {}
        self._early: OrderedDict[str, ResponsePayload] = OrderedDict()
        self._unclaimed: OrderedDict[str, asyncio.Future[ResponsePayload]] = OrderedDict()
        self._resolved: OrderedDict[str, None] = OrderedDict()
        self._abandoned: OrderedDict[str, None] = OrderedDict()
        self._subscription_id: Optional[int] = None
        self.violations: int = 0

    def subscription_start(self) -> None:
        """Subscribe to Response signals on every request path."""
        if self._subscription_id is not None:
            return
        self._subscription_id = self._transport.signal_subscribe(
            settings.REQUEST_INTERFACE,
            settings.REQUEST_RESPONSE_SIGNAL,
            None,
            self._response_on,
        )

    def subscription_stop(self) -> None:
        """Drop the Response subscription and cancel every pending future."""
        if self._subscription_id is not None:
            self._transport.signal_unsubscribe(self._subscription_id)
            self._subscription_id = None
        for path in list(self._pending):
            self.request_discard(path)
        self._early.clear()
        self._unclaimed.clear()

    def pendingCount_get(self) -> int:
        return len(self._pending)

    def isRegistered_check(self, path: str) -> bool:
        return path in self._pending

    def request_register(
        self, path: str, on_resolve: Optional[ResolveCallback] = None
    ) -> "asyncio.Future[ResponsePayload]":
        """
        Register a request path returned by a portal method.

        A response already buffered for the path resolves the future at once.
        The registration is removed as soon as the future is resolved.

        Args:
            path: Request object path.
            on_resolve: Called with the settled future when the response
                arrives. Without it the future is kept for response_await().

        Returns:
            Future resolved with (response code, results).

        Raises:
            ProtocolError: If the path is already registered.
        """
        if path in self._pending:
            raise ProtocolError(f"request path {path} is already pending")

        # A reused handle token yields the same path as an earlier request.
        self._resolved.pop(path, None)
        self._abandoned.pop(path, None)
        self._unclaimed.pop(path, None)

        future: asyncio.Future[ResponsePayload] = asyncio.get_running_loop().create_future()
        self._pending[path] = (future, on_resolve)
        logger.debug("Registered request %s", path)

        early = self._early.pop(path, None)
        if early is not None:
            logger.debug("Request %s answered before registration", path)
            self._future_settle(path, payload=early)
        return future

    def request_discard(self, path: str) -> bool:
        """
        Remove a registration without waiting for its response.

        The portal is not told; the request may still complete on its side.
        A response arriving later for the path is dropped.

        Returns:
            True if a registration was removed.
        """
        entry = self._pending.pop(path, None)
        if entry is None:
            return False
        future, _ = entry
        if not future.done():
            future.cancel()
        _history_record(self._abandoned, path)
        logger.debug("Discarded request %s", path)
        return True

    def response_deliver(self, path: str, response: int, results: dict[str, Any]) -> None:
        """
        Route one Response to its request.

        Args:
            path: Request object path the signal was emitted on.
            response: Response code.
            results: Results vardict.
        """
        if path in self._abandoned:
            del self._abandoned[path]
            _history_record(self._resolved, path)
            logger.warning(
                "Dropping late response for abandoned request %s (code=%s)", path, response
            )
            return

        if path in self._resolved or path in self._early:
            self.violations += 1
            logger.error("Duplicate response for request %s ignored (code=%s)", path, response)
            return

        if path not in self._pending:
            self._early[path] = (response, results)
            if len(self._early) > settings.EARLY_RESPONSE_LIMIT:
                dropped, _ = self._early.popitem(last=False)
                logger.warning("Dropping unclaimed response for request %s", dropped)
            return

        self._future_settle(path, payload=(response, results))

    async def response_await(self, path: str, timeout: Optional[float] = None) -> ResponsePayload:
        """
        Wait for the response to a request registered without a callback.

        The registration is removed whether the wait completes, times out
        or is cancelled.

        Args:
            path: Request object path.
            timeout: Seconds to wait, or None to wait forever.

        Returns:
            Tuple of (response code, results).

        Raises:
            StateError: If the path is neither pending nor answered.
            asyncio.TimeoutError: If no response arrived in time.
        """
        entry = self._pending.get(path)
        future = entry[0] if entry is not None else self._unclaimed.pop(path, None)
        if future is None:
            raise StateError(f"no pending request registered for {path}")
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self._unclaimed.pop(path, None)
            entry = self._pending.get(path)
            if entry is not None and entry[0] is future:
                self.request_discard(path)

    def _response_on(self, path: str, arguments: tuple) -> None:
        """Signal callback for Request::Response."""
        try:
            response, results = arguments
        except (TypeError, ValueError):
            self.violations += 1
            logger.error("Malformed response on %s: %r", path, arguments)
            if path in self._pending:
                self._future_settle(path, error=ProtocolError(f"malformed response on {path}"))
            return
        self.response_deliver(path, response, results)

    def _future_settle(
        self,
        path: str,
        payload: Optional[ResponsePayload] = None,
        error: Optional[PortalError] = None,
    ) -> None:
        """Resolve a registered future and drop its registration."""
        future, on_resolve = self._pending.pop(path)
        _history_record(self._resolved, path)
        if future.done():
            return

        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(payload)
        logger.debug("Resolved request %s", path)

        if on_resolve is not None:
            on_resolve(future)
            return
        self._unclaimed[path] = future
        if len(self._unclaimed) > settings.EARLY_RESPONSE_LIMIT:
            dropped, stale = self._unclaimed.popitem(last=False)
            if not stale.cancelled():
                stale.exception()
            logger.warning("Dropping unclaimed result for request %s", dropped)


class PendingRequest:
    """
    Handle on one outstanding portal request.

    The request registers itself with the correlator. When the response
    arrives it is decoded and `on_success` runs, whether or not anyone is
    awaiting; `response_receive()` then hands over the stored outcome.
    """

    def __init__(
        self,
        correlator: RequestCorrelator,
        transport: PortalTransport,
        path: str,
        on_success: Optional[Callable[[dict[str, Any]], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Initialize pending request and register its path.

        Args:
            correlator: Correlator routing the Response for path.
            transport: Bus connection, used by close().
            path: Request object path.
            on_success: Called with the results of a successful response.
            on_finish: Called once when the request stops being pending.

        Raises:
            ProtocolError: If path is already registered.
        """
        self._correlator = correlator
        self._transport = transport
        self._path = path
        self._on_success = on_success
        self._on_finish = on_finish
        self._finished = False
        self._received = False
        self._results: Optional[dict[str, Any]] = None
        self._error: Optional[BaseException] = None
        self._future = correlator.request_register(path, self._resolved_on)

    @property
    def path(self) -> str:
        return self._path

    @property
    def finished(self) -> bool:
        return self._finished

    async def response_receive(
        self,
        response_type: Type[T] = BasicResponse,  # type: ignore[assignment]
        timeout: Any = _DEFAULT_TIMEOUT,
    ) -> T:
        """
        Wait for the response and decode its results.

        Args:
            response_type: Record class with a `vardict_parse` classmethod.
            timeout: Seconds to wait; defaults to the configured timeout.

        Returns:
            Decoded response record.

        Raises:
            BrokerError: If the portal reported cancellation or failure.
            ProtocolError: If the response could not be decoded.
            StateError: If the response was already received or the
                request was discarded.
            asyncio.TimeoutError: If no response arrived in time.
        """
        if self._received:
            raise StateError(f"request {self._path} is no longer pending")
        self._received = True
        if timeout is _DEFAULT_TIMEOUT:
            timeout = settings.responseTimeout_get()

        try:
            await asyncio.wait({self._future}, timeout=timeout)
        except asyncio.CancelledError:
            self.discard()
            raise

        if not self._future.done():
            self.discard()
            raise asyncio.TimeoutError(f"no response to {self._path} within {timeout}s")
        if self._future.cancelled():
            self._finish()
            raise StateError(f"request {self._path} was discarded")
        if self._error is not None:
            raise self._error
        return response_type.vardict_parse(self._results)

    async def close(self) -> None:
        """
        Ask the portal to close the request, then drop the registration.
        """
        if self._finished:
            return
        try:
            await self._transport.method_call(
                self._path, settings.REQUEST_INTERFACE, "Close", "", ()
            )
        finally:
            self.discard()

    def discard(self) -> None:
        """Abandon the request locally without telling the portal."""
        if self._finished:
            return
        self._correlator.request_discard(self._path)
        self._finish()

    def _resolved_on(self, future: "asyncio.Future[ResponsePayload]") -> None:
        """Decode the response as soon as the correlator settles it."""
        self._finish()
        error = future.exception()
        if error is not None:
            self._error = error
            return

        code, results = future.result()
        try:
            response = ResponseType.wire_decode(code)
            if response != ResponseType.SUCCESS:
                logger.warning("Request %s ended with response %s", self._path, response.name)
                raise BrokerError(response)
            if not isinstance(results, dict):
                raise ProtocolError(f"results of {self._path} are not a dictionary: {results!r}")
            if self._on_success is not None:
                self._on_success(results)
        except PortalError as exc:
            self._error = exc
            return
        self._results = results

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        if self._on_finish is not None:
            self._on_finish()
