"""Typed client for the Aether remote service.

Wraps every remote capability in one coroutine built on RequestExecutor.
Ordinary operations propagate RemoteError; chat send, chat history and the
connection probe always resolve to a structured result instead.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from aetherdeck.config.schema import RemoteConfig
from aetherdeck.config.secrets import fetch_secret
from aetherdeck.logging import get_logger
from aetherdeck.remote.errors import RemoteError, RemoteTimeoutError
from aetherdeck.remote.executor import RequestExecutor, RequestOptions, RetryPolicy
from aetherdeck.remote.results import (
    ChatHistory,
    ChatResult,
    ConnectionStatus,
    utc_timestamp,
)
from aetherdeck.remote.transport import HttpxTransport, Transport
from aetherdeck.session.identity import SessionIdentity

log = get_logger("remote.client")

IN_FLIGHT_MESSAGE = "Another request is already in progress. Please wait."


class RemoteServiceClient:
    """Client for the remote service, one instance per process.

    Owns the chat single-flight flag; pass the instance explicitly to every
    caller rather than creating more.

    Example:
        >>> async with RemoteServiceClient(config.remote, identity) as client:
        ...     health = await client.get_health()
        ...     reply = await client.send_chat_message("hello")
    """

    def __init__(
        self,
        config: RemoteConfig,
        identity: SessionIdentity,
        *,
        transport: Transport | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self._config = config
        self._identity = identity
        self._owned_transport: HttpxTransport | None = None
        if transport is None:
            headers: dict[str, str] = {}
            token = fetch_secret(config.api_key_env) if config.api_key_env else None
            if token:
                headers["Authorization"] = f"Bearer {token}"
            transport = self._owned_transport = HttpxTransport(
                config.base_url, headers=headers, client=http_client
            )

        executor_kwargs: dict[str, Any] = {"default_timeout": config.timeout}
        if sleep is not None:
            executor_kwargs["sleep"] = sleep
        self._executor = RequestExecutor(
            transport,
            RetryPolicy(max_attempts=config.max_attempts, retry_delay=config.retry_delay),
            **executor_kwargs,
        )
        self._chat_in_flight = False
        log.info("Session initialized: %s", self.session_id)

    async def __aenter__(self) -> RemoteServiceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    @property
    def session_id(self) -> str:
        return self._identity.current

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def clear_session(self) -> str:
        """Replace the persisted session token; returns the new one."""
        return self._identity.clear()

    def is_request_pending(self) -> bool:
        """True while a chat send is outstanding."""
        return self._chat_in_flight

    async def _get(self, target: str) -> Any:
        return await self._executor.execute(target, timeout=self._config.timeout)

    async def _post(self, target: str, body: Any, timeout: float | None = None) -> Any:
        return await self._executor.execute(
            target,
            RequestOptions(method="POST", json=body),
            timeout=timeout if timeout is not None else self._config.timeout,
        )

    # -- ordinary operations (errors propagate) ---------------------------

    async def get_health(self) -> Any:
        """System health and status."""
        return await self._get("/health")

    async def get_edicts(self) -> Any:
        """All configured edicts (automations)."""
        return await self._get("/edicts")

    async def get_stats(self) -> Any:
        return await self._get("/stats")

    async def execute_edict(self, name: str, context: dict[str, Any] | None = None) -> Any:
        """Run the named edict through its webhook with an arbitrary context payload."""
        return await self._post(f"/webhook/{quote(name, safe='')}", context or {})

    async def get_cron_jobs(self) -> Any:
        return await self._get("/cron/jobs")

    async def get_consciousness(self) -> Any:
        """Status of the reasoning subsystem."""
        return await self._get("/consciousness/status")

    async def query_consciousness(self, query: str, context: dict[str, Any] | None = None) -> Any:
        """Send a query to the reasoning subsystem."""
        return await self._post("/consciousness/query", {"query": query, "context": context or {}})

    async def get_logs(self, limit: int = 50) -> Any:
        """Recent execution logs."""
        return await self._get(f"/logs?limit={int(limit)}")

    async def get_wekan_status(self) -> Any:
        return await self._get("/wekan/status")

    async def get_foundry_cards(self) -> Any:
        return await self._get("/foundry/cards")

    async def get_foundry_stats(self) -> Any:
        return await self._get("/foundry/stats")

    async def get_foundry_reports(self) -> Any:
        return await self._get("/foundry/reports")

    # -- soft-failing operations -------------------------------------------

    async def send_chat_message(
        self,
        message: str,
        on_stream_update: Callable[[str], Any] | None = None,
    ) -> ChatResult:
        """Send a chat message under the current session.

        Only one chat send may be outstanding; a second call made meanwhile
        returns a failed result with ``error_kind="in_flight"`` without
        touching the network. Never raises.

        Args:
            message: User message text.
            on_stream_update: Optional callback receiving the reply text.
        """
        if self._chat_in_flight:
            log.warning("Chat send rejected: another chat request is in flight")
            return ChatResult(
                success=False,
                session_id=self.session_id,
                timestamp=utc_timestamp(),
                error=IN_FLIGHT_MESSAGE,
                error_kind="in_flight",
            )

        self._chat_in_flight = True
        try:
            session_id = self.session_id
            body = {
                "message": message,
                "session_id": session_id,
                "timestamp": utc_timestamp(),
            }
            log.debug("Sending chat message with session %s", session_id)
            reply = await self._post("/api/chat", body, timeout=self._config.chat_timeout)

            text = _reply_text(reply)
            if on_stream_update is not None and text is not None:
                on_stream_update(text)

            return ChatResult(
                success=True,
                session_id=session_id,
                timestamp=utc_timestamp(),
                response=text or "No response",
            )
        except RemoteError as e:
            log.error("Chat error: %s", e)
            return ChatResult(
                success=False,
                session_id=self.session_id,
                timestamp=utc_timestamp(),
                error=str(e),
                error_kind="timeout" if isinstance(e, RemoteTimeoutError) else "connection",
            )
        except Exception as e:
            log.exception("Chat error")
            return ChatResult(
                success=False,
                session_id=self.session_id,
                timestamp=utc_timestamp(),
                error=str(e) or type(e).__name__,
                error_kind="internal",
            )
        finally:
            self._chat_in_flight = False

    async def get_chat_history(self) -> ChatHistory:
        """Chat history for the current session. Never raises."""
        try:
            data = await self._get(f"/api/chat/history/{quote(self.session_id, safe='')}")
        except RemoteError as e:
            log.warning("Failed to get chat history: %s", e)
            return ChatHistory(messages=[], available=False, error=str(e))
        except Exception as e:
            log.exception("Chat history error")
            return ChatHistory(messages=[], available=False, error=str(e) or type(e).__name__)

        if isinstance(data, list):
            return ChatHistory(messages=data)
        if isinstance(data, dict) and isinstance(data.get("messages"), list):
            return ChatHistory(messages=data["messages"])
        return ChatHistory(messages=[])

    async def test_connection(self) -> ConnectionStatus:
        """Probe /health and report connected/disconnected. Never raises."""
        try:
            health = await self.get_health()
        except RemoteError as e:
            return ConnectionStatus(connected=False, session_id=self.session_id, error=str(e))
        except Exception as e:
            log.exception("Connection test error")
            return ConnectionStatus(
                connected=False, session_id=self.session_id, error=str(e) or type(e).__name__
            )

        status = version = None
        if isinstance(health, dict):
            status = health.get("status")
            version = health.get("aether_version")
        return ConnectionStatus(
            connected=True,
            session_id=self.session_id,
            status=None if status is None else str(status),
            version=None if version is None else str(version),
        )


def _reply_text(reply: Any) -> str | None:
    """Pull the assistant text out of a chat reply body."""
    if isinstance(reply, dict):
        text = reply.get("response") or reply.get("message")
        return None if text is None else str(text)
    if reply is None:
        return None
    return str(reply)
