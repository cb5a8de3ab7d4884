"""MCP server connections and their server-provided instructions."""

import logging
from contextlib import AsyncExitStack

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

logger = logging.getLogger(__name__)

INSTRUCTIONS_TEMPLATE = (
    "The following are instructions provided by the tool server '{name}':\n"
    "---[start of server instructions]---\n"
    "{text}\n"
    "---[end of server instructions]---"
)


class MCPManager:
    """Manages multiple MCP server connections.

    Starts servers, keeps the instructions each one advertises during
    initialization, and shuts everything down cleanly.
    """

    def __init__(self) -> None:
        self._exit_stack = AsyncExitStack()
        # server_name -> instructions, in connection order
        self._instructions: dict[str, str] = {}
        self._sessions: dict[str, ClientSession] = {}

    async def start(self, servers: list) -> None:
        """Connect to all configured MCP servers.

        Args:
            servers: List of MCPServerConfig objects.
        """
        for server_config in servers:
            try:
                await self._connect_server(server_config)
            except Exception as e:
                logger.warning(
                    f"MCP server '{server_config.name}' failed to start: {e}. "
                    f"Continuing without it."
                )

        logger.info(
            f"MCP manager started: {len(self._sessions)} servers, "
            f"{len(self._instructions)} with instructions"
        )

    async def _connect_server(self, server_config) -> None:
        """Connect to a single MCP server and record its instructions."""
        params = StdioServerParameters(
            command=server_config.command,
            args=server_config.args,
            env=server_config.env if server_config.env else None,
        )

        stdio_transport = await self._exit_stack.enter_async_context(
            stdio_client(params)
        )
        read_stream, write_stream = stdio_transport
        session = await self._exit_stack.enter_async_context(
            ClientSession(read_stream, write_stream)
        )
        result = await session.initialize()

        self._sessions[server_config.name] = session
        self.set_instructions(server_config.name, result.instructions or "")
        logger.info(f"MCP server '{server_config.name}' connected")

    def set_instructions(self, server_name: str, instructions: str) -> None:
        """Record (or clear, when blank) the instructions of a server."""
        text = instructions.strip()
        if text:
            self._instructions[server_name] = text
        else:
            self._instructions.pop(server_name, None)

    def get_server_names(self) -> list[str]:
        return list(self._sessions)

    def get_mcp_instructions(self) -> str:
        """All server instructions as one block per server, blank-line separated."""
        return "\n\n".join(
            INSTRUCTIONS_TEMPLATE.format(name=name, text=text)
            for name, text in self._instructions.items()
        )

    async def shutdown(self) -> None:
        """Shut down all MCP server connections."""
        try:
            await self._exit_stack.aclose()
            logger.info("MCP manager shut down")
        except Exception as e:
            logger.warning(f"Error during MCP shutdown: {e}")
        self._sessions.clear()
        self._instructions.clear()
