"""MCP stdio server exposing the bridge tools."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from responses_bridge.dispatcher import GENERATE_TOOL, MODELS_TOOL, ToolDispatcher
from responses_bridge.schema import ListModelsArguments, argument_json_schema

if TYPE_CHECKING:
    from responses_bridge.config import Settings
    from responses_bridge.result import ToolResult

logger = logging.getLogger(__name__)

SERVER_NAME = "gpt5-mcp"


def tool_definitions(settings: Settings) -> list[types.Tool]:
    models_schema = ListModelsArguments.model_json_schema()
    models_schema["properties"]["prefix"]["default"] = settings.models_prefix
    return [
        types.Tool(
            name=GENERATE_TOOL,
            title="OpenAI GPT-5 (Responses API)",
            description=(
                "Full-parameter passthrough to the OpenAI Responses API. Give the "
                "content as input, messages or prompt. Supports verbosity, "
                "reasoning (effort), response_format, tools and more."
            ),
            inputSchema=argument_json_schema(settings),
        ),
        types.Tool(
            name=MODELS_TOOL,
            title=f"OpenAI models list ({settings.models_prefix}*)",
            description="List OpenAI model ids starting with a prefix.",
            inputSchema=models_schema,
        ),
    ]


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=part.text) for part in result.content],
        isError=result.is_error,
    )


async def handle_call_tool(
    dispatcher: ToolDispatcher, name: str, arguments: dict[str, Any] | None
) -> types.CallToolResult:
    result = await dispatcher.dispatch(name, arguments)
    return to_call_tool_result(result)


def build_server(dispatcher: ToolDispatcher, *, version: str | None = None) -> Server:
    """Create an MCP server whose tools are served by *dispatcher*."""
    server: Server = Server(SERVER_NAME, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_definitions(dispatcher.settings)

    # Arguments are validated by the dispatcher so failures keep their shape.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        return await handle_call_tool(dispatcher, name, arguments)

    return server


async def serve(settings: Settings, *, version: str | None = None) -> None:
    """Serve the bridge tools over stdio until the client disconnects."""
    dispatcher = ToolDispatcher(settings)
    server = build_server(dispatcher, version=version)
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info(
                "[%s] started (OPENAI_API_KEY source: %s).",
                SERVER_NAME,
                settings.api_key.source,
            )
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await dispatcher.aclose()
