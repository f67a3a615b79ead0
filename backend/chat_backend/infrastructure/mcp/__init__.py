"""MCP infrastructure package — external tool servers."""

import httpx

from chat_backend.config import Settings

from .http_tool_client import McpHttpClient, McpToolRegistry


def build_tool_registry(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> McpToolRegistry:
    """Registry over the configured web search and web reader servers."""
    api_key = settings.mcp_credential
    endpoints = {
        "web_search": settings.mcp_web_search_url.strip(),
        "web_reader": settings.mcp_web_reader_url.strip(),
    }
    servers = [
        McpHttpClient(
            url=url,
            api_key=api_key,
            server_id=server_id,
            http_client=http_client,
            timeout=settings.mcp_tool_timeout_seconds,
        )
        for server_id, url in endpoints.items()
        if url
    ]
    return McpToolRegistry(servers, api_key)


__all__ = ["McpHttpClient", "McpToolRegistry", "build_tool_registry"]
