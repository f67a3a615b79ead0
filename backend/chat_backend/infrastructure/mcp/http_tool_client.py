"""MCP client over streamable HTTP, and a registry implementing ToolClient.

Each server speaks JSON-RPC 2.0 over POST. Responses arrive either as a
plain JSON body or as a short ``text/event-stream`` whose ``data:`` lines
carry the JSON-RPC messages. The session id handed out during
``initialize`` is echoed on every later request.
"""

import asyncio
import json
import logging
from typing import Any

import httpx

from chat_backend.application.interfaces.tool_client import ToolClient
from chat_backend.domain.entities import ToolInfo
from chat_backend.domain.exceptions import ToolExecutionError

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"
SESSION_HEADER = "mcp-session-id"


def parse_sse_messages(body: str) -> list[dict[str, Any]]:
    """Decode the JSON payloads of an event-stream body."""
    messages: list[dict[str, Any]] = []
    data_lines: list[str] = []

    def flush() -> None:
        if not data_lines:
            return
        try:
            payload = json.loads("\n".join(data_lines))
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON SSE event")
        else:
            if isinstance(payload, dict):
                messages.append(payload)
        data_lines.clear()

    for line in body.splitlines():
        if not line.strip():
            flush()
        elif line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
    flush()
    return messages


class McpHttpClient:
    """One MCP server reached over streamable HTTP."""

    def __init__(
        self,
        url: str,
        api_key: str,
        server_id: str,
        http_client: httpx.AsyncClient | None = None,
        client_name: str = "chat-backend",
        timeout: float = 30.0,
    ):
        self.url = url
        self.server_id = server_id
        self._api_key = api_key
        self._http_client = http_client
        self._client_name = client_name
        self._timeout = timeout
        self._session_id: str | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._msg_id = 0

    def _next_id(self) -> int:
        self._msg_id += 1
        return self._msg_id

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._session_id:
            headers["Mcp-Session-Id"] = self._session_id
        return headers

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        try:
            return await client.post(self.url, headers=self._headers(), json=body)
        except httpx.HTTPError as exc:
            raise ToolExecutionError(
                self.server_id, f"connection to {self.url} failed: {exc}"
            ) from exc
        finally:
            if self._http_client is None:
                await client.aclose()

    def _read_response(self, response: httpx.Response, msg_id: int, method: str) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ToolExecutionError(
                self.server_id, f"{method} returned HTTP {response.status_code}: {response.text[:200]}"
            )

        content_type = response.headers.get("content-type", "")
        if "text/event-stream" in content_type:
            candidates = parse_sse_messages(response.text)
        else:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ToolExecutionError(self.server_id, f"{method} returned invalid JSON") from exc
            candidates = payload if isinstance(payload, list) else [payload]

        for message in candidates:
            if isinstance(message, dict) and message.get("id") == msg_id:
                if "error" in message:
                    error = message["error"]
                    detail = error.get("message", error) if isinstance(error, dict) else error
                    raise ToolExecutionError(self.server_id, f"{method} failed: {detail}")
                result = message.get("result")
                return result if isinstance(result, dict) else {}
        raise ToolExecutionError(self.server_id, f"{method} returned no matching response")

    async def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        msg_id = self._next_id()
        body = {"jsonrpc": "2.0", "id": msg_id, "method": method, "params": params}
        response = await self._post(body)

        if method == "initialize":
            session_id = response.headers.get(SESSION_HEADER)
            if session_id:
                self._session_id = session_id
        return self._read_response(response, msg_id, method)

    async def ensure_initialized(self) -> None:
        """Run the initialize handshake once per session."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            self._session_id = None
            await self._request(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": self._client_name, "version": "1.0.0"},
                },
            )
            await self._post({"jsonrpc": "2.0", "method": "notifications/initialized"})
            self._initialized = True
            logger.info("MCP server '%s' initialized (session=%s)", self.server_id, self._session_id)

    def reset(self) -> None:
        """Forget the session; the next call re-initializes."""
        self._initialized = False
        self._session_id = None

    async def list_tools(self) -> list[ToolInfo]:
        await self.ensure_initialized()
        tools: list[ToolInfo] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor else {}
            result = await self._request("tools/list", params)
            for item in result.get("tools") or []:
                if not isinstance(item, dict) or not item.get("name"):
                    continue
                schema = item.get("inputSchema")
                tools.append(
                    ToolInfo(
                        name=item["name"],
                        server_id=self.server_id,
                        description=item.get("description") or "",
                        input_schema=schema if isinstance(schema, dict) else {"type": "object", "properties": {}},
                    )
                )
            cursor = result.get("nextCursor")
            if not cursor:
                return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Invoke a tool and return its result envelope.

        Raises:
            ToolExecutionError: Transport failure, JSON-RPC error, or a
                result flagged ``isError``.
        """
        await self.ensure_initialized()
        result = await self._request("tools/call", {"name": name, "arguments": arguments})
        if result.get("isError"):
            texts = [
                chunk.get("text", "")
                for chunk in result.get("content") or []
                if isinstance(chunk, dict) and chunk.get("type") == "text"
            ]
            raise ToolExecutionError(name, " ".join(t for t in texts if t) or "tool reported an error")
        return result


class McpToolRegistry(ToolClient):
    """ToolClient over several MCP servers, keyed by server id.

    Tool listings are cached per server after the first success. A server
    that cannot be reached is skipped, not fatal.
    """

    def __init__(self, servers: list[McpHttpClient], api_key: str):
        self._servers = {server.server_id: server for server in servers}
        self._api_key = api_key
        self._tools: dict[str, list[ToolInfo]] = {}

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) and bool(self._servers)

    async def list_tools(self) -> list[ToolInfo]:
        tools: list[ToolInfo] = []
        for server_id, server in self._servers.items():
            if server_id not in self._tools:
                try:
                    self._tools[server_id] = await server.list_tools()
                except ToolExecutionError as exc:
                    logger.warning("MCP server '%s' unavailable: %s", server_id, exc)
                    server.reset()
                    continue
            tools.extend(self._tools[server_id])
        return tools

    async def call_tool(
        self, server_id: str, name: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        server = self._servers.get(server_id)
        if server is None:
            raise ToolExecutionError(name, f"unknown tool server '{server_id}'")
        try:
            return await server.call_tool(name, arguments)
        except ToolExecutionError:
            # The session may have expired; the next call starts a new one.
            server.reset()
            self._tools.pop(server_id, None)
            raise
