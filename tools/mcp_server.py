# tools/mcp_server.py
"""
MCP stdio server exposing the voice tools.

    python -m tools.mcp_server

Parameter names are the wire names MCP clients send (camelCase).
"""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastmcp import FastMCP

from services.container import ServiceContainer
from tools.schemas import DEFAULT_PING_MESSAGE
from tools.voice_tools import VoiceTools

SERVER_ID = "padle-voice-server"

Language = Literal["ru-RU", "en-US", "th-TH"]


def build_server(tools: VoiceTools) -> FastMCP:
    mcp = FastMCP(SERVER_ID)
    descriptions = {t["name"]: t["description"] for t in tools.list_tools()}

    @mcp.tool(name="ping", description=descriptions["ping"])
    async def ping(message: str = DEFAULT_PING_MESSAGE) -> Dict[str, Any]:
        return await tools.call_tool("ping", {"message": message})

    @mcp.tool(name="parse_voice_command", description=descriptions["parse_voice_command"])
    async def parse_voice_command(text: str, language: Language = "ru-RU") -> Dict[str, Any]:
        return await tools.call_tool("parse_voice_command", {"text": text, "language": language})

    @mcp.tool(name="voice_booking", description=descriptions["voice_booking"])
    async def voice_booking(
        text: str,
        userId: str,  # noqa: N803
        sessionId: str,  # noqa: N803
        language: Language = "ru-RU",
    ) -> Dict[str, Any]:
        return await tools.call_tool(
            "voice_booking",
            {"text": text, "userId": userId, "sessionId": sessionId, "language": language},
        )

    @mcp.tool(name="self_test", description=descriptions["self_test"])
    async def self_test(
        testType: Literal["ping", "parse_command", "voice_booking", "full_cycle"] = "ping",  # noqa: N803
        testData: Optional[str] = None,  # noqa: N803
    ) -> Dict[str, Any]:
        return await tools.call_tool("self_test", {"testType": testType, "testData": testData})

    return mcp


def main() -> None:
    container = ServiceContainer.from_env()
    build_server(container.voice_tools()).run()


if __name__ == "__main__":
    main()
