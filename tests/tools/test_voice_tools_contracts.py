# tests/tools/test_voice_tools_contracts.py
import inspect
import pytest

voice_tools = pytest.importorskip("tools.voice_tools")

REQ = {
    "ping": ["message"],
    "parse_voice_command": ["text", "language"],
    "voice_booking": ["text", "user_id", "session_id", "language"],
    "self_test": ["test_type", "test_data"],
    "call_tool": ["name", "arguments"],
    "list_tools": [],
}

def _params(fn):
    sig = inspect.signature(fn)
    return [p.name for p in sig.parameters.values()
            if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)]

def test_tools_exist_and_callable():
    cls = voice_tools.VoiceTools
    missing = [n for n in REQ if not hasattr(cls, n)]
    assert not missing, f"Missing tools: {missing}"
    for n in REQ:
        assert callable(getattr(cls, n)), f"{n} not callable"

@pytest.mark.parametrize("name,expected", REQ.items())
def test_signatures_match(name, expected):
    params = _params(getattr(voice_tools.VoiceTools, name))
    for req in expected:
        assert req in params, f"{name} must accept '{req}', got {params}"

@pytest.mark.parametrize("name", ["ping", "parse_voice_command", "voice_booking", "self_test", "call_tool"])
def test_tools_are_coroutines(name):
    assert inspect.iscoroutinefunction(getattr(voice_tools.VoiceTools, name))

def test_mcp_server_builds():
    fastmcp = pytest.importorskip("fastmcp")
    from unittest.mock import AsyncMock
    from services.speech import MockSpeechBridge
    from tools.mcp_server import SERVER_ID, build_server

    server = build_server(voice_tools.VoiceTools(AsyncMock(), MockSpeechBridge()))
    assert isinstance(server, fastmcp.FastMCP)
    assert server.name == SERVER_ID
