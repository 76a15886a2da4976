"""
Voice tools
-----------
The callable surface shared by the MCP server and the HTTP API.

Exports:
  - VoiceTools.ping(message)
  - VoiceTools.parse_voice_command(text, language)
  - VoiceTools.voice_booking(text, user_id, session_id, language)
  - VoiceTools.self_test(test_type, test_data)
  - VoiceTools.call_tool(name, arguments)      # JSON arguments, camelCase keys
  - VoiceTools.list_tools()

Every call validates its arguments first and always returns a dict carrying
`success` and an ISO-8601 `timestamp`; nothing raises past this layer.
"""
from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from common.messages import msg
from common.utils import _iso_now, _zone
from services.booking_service import VoiceBookingService
from services.command_parser import parse_voice_command as _parse
from services.speech import SpeechBridge
from tools.schemas import (
    ParseCommandArgs,
    PingArgs,
    SelfTestArgs,
    VoiceBookingArgs,
    DEFAULT_PING_MESSAGE,
    validation_details,
)
from utils.logger import ToolCallLogger, truncate

logger = logging.getLogger("voice-booking")

SERVER_NAME = "MCP Voice Server v1.0.0"
NOT_RECOGNIZED = "Voice command not recognized"
INTERNAL_ERROR = "Internal tool error"

DEFAULT_TEST_TEXT = "Забронируй корт на завтра в 14:00"
TEST_USER_ID = "test-user-123"
TEST_SESSION_ID = "test-session-456"


@dataclass
class ToolDef:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[Any], Awaitable[Dict[str, Any]]]


def _elapsed_ms(t0: float) -> float:
    return (_time.perf_counter() - t0) * 1000


class VoiceTools:
    def __init__(
        self,
        get_service: Callable[[], Awaitable[VoiceBookingService]],
        speech: SpeechBridge,
        *,
        timezone: str = "UTC",
        today: Optional[Callable[[], date]] = None,
    ):
        self.get_service = get_service
        self.speech = speech
        self.timezone = timezone
        self.today = today or (lambda: datetime.now(_zone(self.timezone)).date())
        self._tools: Dict[str, ToolDef] = {
            t.name: t
            for t in (
                ToolDef("ping", "🏓 Health check for the voice server", PingArgs, self._ping),
                ToolDef(
                    "parse_voice_command",
                    "🧠 Parse a voice command for court booking",
                    ParseCommandArgs,
                    self._parse_voice_command,
                ),
                ToolDef(
                    "voice_booking",
                    "🎤 Full voice booking round trip with a spoken reply",
                    VoiceBookingArgs,
                    self._voice_booking,
                ),
                ToolDef(
                    "self_test",
                    "🧪 Self-test of ping, parsing and booking",
                    SelfTestArgs,
                    self._self_test,
                ),
            )
        }

    # ---------------- public surface ----------------
    async def ping(self, message: str = DEFAULT_PING_MESSAGE) -> Dict[str, Any]:
        return await self.call_tool("ping", {"message": message})

    async def parse_voice_command(self, text: str, language: str = "ru-RU") -> Dict[str, Any]:
        return await self.call_tool("parse_voice_command", {"text": text, "language": language})

    async def voice_booking(
        self,
        text: str,
        user_id: str,
        session_id: str,
        language: str = "ru-RU",
    ) -> Dict[str, Any]:
        return await self.call_tool(
            "voice_booking",
            {"text": text, "userId": user_id, "sessionId": session_id, "language": language},
        )

    async def self_test(self, test_type: str = "ping", test_data: Optional[str] = None) -> Dict[str, Any]:
        return await self.call_tool("self_test", {"testType": test_type, "testData": test_data})

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": t.name,
                "description": t.description,
                "inputSchema": t.args_model.model_json_schema(by_alias=True),
            }
            for t in self._tools.values()
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("unknown tool requested: %s", name)
            return {
                "success": False,
                "isError": True,
                "error": f"Unknown tool: {name}",
                "errorType": "unknown_tool",
                "tool": name,
                "timestamp": _iso_now(),
            }

        try:
            args = tool.args_model.model_validate(arguments or {})
        except ValidationError as e:
            details = validation_details(e)
            logger.info("tool %s rejected invalid arguments: %s", name, truncate(details))
            return {
                "success": False,
                "error": f"Invalid arguments for {name}: {details[0]['message'] if details else e}",
                "errorType": "validation_error",
                "details": details,
                "tool": name,
                "timestamp": _iso_now(),
            }

        tlog = ToolCallLogger(logger, getattr(args, "session_id", None))
        tlog.start(name, args.model_dump(by_alias=True))
        t0 = _time.perf_counter()
        try:
            out = await tool.handler(args)
        except Exception as e:
            logger.exception("tool %s failed", name)
            tlog.failure(name, e)
            out = {"success": False, "error": INTERNAL_ERROR, "tool": name, "timestamp": _iso_now()}
        tlog.result(name, bool(out.get("success")), _elapsed_ms(t0))
        return out

    # ---------------- handlers ----------------
    async def _ping(self, args: PingArgs) -> Dict[str, Any]:
        return {
            "success": True,
            "message": f"🎤 Voice Server is alive! {args.message}",
            "timestamp": _iso_now(),
            "server": SERVER_NAME,
        }

    async def _parse_voice_command(self, args: ParseCommandArgs) -> Dict[str, Any]:
        command = _parse(args.text, today=self.today())
        return {
            "success": True,
            "command": command.to_dict() if command else None,
            "originalText": args.text,
            "language": args.language,
            "timestamp": _iso_now(),
        }

    async def _voice_booking(self, args: VoiceBookingArgs) -> Dict[str, Any]:
        t0 = _time.perf_counter()
        tlog = ToolCallLogger(logger, args.session_id)
        echo = {
            "originalText": args.text,
            "userId": args.user_id,
            "sessionId": args.session_id,
            "language": args.language,
        }

        command = _parse(args.text, today=self.today())
        if command is None:
            tlog.interaction(user_id=args.user_id, command=None, success=False, response_time_ms=_elapsed_ms(t0))
            return {
                "success": False,
                "error": NOT_RECOGNIZED,
                "suggestion": msg("suggestion", args.language),
                **echo,
                "timestamp": _iso_now(),
            }

        try:
            service = await self.get_service()
            result = await service.process_voice_booking(command, args.user_id, locale=args.language)
        except Exception:
            # the service itself never raises; this covers building it
            logger.exception("voice_booking could not reach the booking service")
            tlog.interaction(
                user_id=args.user_id, command=command.command.value, success=False,
                response_time_ms=_elapsed_ms(t0),
            )
            return {
                "success": False,
                "error": msg("processing_error", args.language),
                "command": command.to_dict(),
                **echo,
                "timestamp": _iso_now(),
            }

        audio_url = None
        try:
            spoken = await self.speech.text_to_voice(
                result.message,
                emotion="excited" if result.success else "calm",
            )
            audio_url = spoken.audio_url
        except Exception as e:
            logger.warning("text_to_voice failed; replying without audio: %s", e)

        out: Dict[str, Any] = {"success": result.success}
        if result.booking_id is not None:
            out["bookingId"] = result.booking_id
        out["message"] = result.message
        if audio_url:
            out["audioResponse"] = audio_url
        if result.next_steps is not None:
            out["nextSteps"] = list(result.next_steps)
        if result.available_slots is not None:
            out["availableSlots"] = list(result.available_slots)
        out["command"] = command.to_dict()
        out.update(echo)
        out["timestamp"] = _iso_now()

        tlog.interaction(
            user_id=args.user_id, command=command.command.value, success=result.success,
            response_time_ms=_elapsed_ms(t0),
        )
        return out

    async def _self_test(self, args: SelfTestArgs) -> Dict[str, Any]:
        t0 = _time.perf_counter()
        text = args.test_data or DEFAULT_TEST_TEXT
        parse_args = ParseCommandArgs(text=text, language="ru-RU")
        booking_args = VoiceBookingArgs(text=text, userId=TEST_USER_ID, sessionId=TEST_SESSION_ID, language="ru-RU")

        try:
            if args.test_type == "ping":
                result: Dict[str, Any] = await self._ping(PingArgs(message="Self-test ping"))
            elif args.test_type == "parse_command":
                result = await self._parse_voice_command(parse_args)
            elif args.test_type == "voice_booking":
                result = await self._voice_booking(booking_args)
            else:
                ping = await self._ping(PingArgs(message="Full cycle test"))
                parsed = await self._parse_voice_command(parse_args)
                booking = await self._voice_booking(booking_args)
                result = {
                    "ping": ping,
                    "parse": parsed,
                    "booking": booking,
                    "allSuccessful": bool(ping["success"] and parsed["success"] and booking["success"]),
                }
        except Exception:
            logger.exception("self_test %s failed", args.test_type)
            return {
                "success": False,
                "testType": args.test_type,
                "error": INTERNAL_ERROR,
                "performance": {"responseTime": round(_elapsed_ms(t0)), "timestamp": _iso_now()},
                "server": SERVER_NAME,
                "timestamp": _iso_now(),
            }

        return {
            "success": True,
            "testType": args.test_type,
            "result": result,
            "performance": {"responseTime": round(_elapsed_ms(t0)), "timestamp": _iso_now()},
            "server": SERVER_NAME,
            "timestamp": _iso_now(),
        }
