"""OpenCoding engine: one interface over many command-line coding assistants."""
from .models import (
    BuiltCommand,
    NativeSessionId,
    RunState,
    StreamEvent,
    TextFragment,
    ToolCallCompleted,
    ToolCallInputDelta,
    ToolCallRecord,
    ToolCallStarted,
    ToolDetectResult,
    ToolInfo,
    TurnCallbacks,
    TurnOptions,
    UsageReport,
)
from .config import EngineConfig
from .errors import (
    OpenCodingError,
    SpawnError,
    ToolNotFoundError,
)

__all__ = [
    # Facade (lazy import)
    "OpenCodingEngine",
    # Models
    "BuiltCommand",
    "NativeSessionId",
    "RunState",
    "StreamEvent",
    "TextFragment",
    "ToolCallCompleted",
    "ToolCallInputDelta",
    "ToolCallRecord",
    "ToolCallStarted",
    "ToolDetectResult",
    "ToolInfo",
    "TurnCallbacks",
    "TurnOptions",
    "UsageReport",
    # Config
    "EngineConfig",
    # YAML config (lazy import)
    "load_yaml_config",
    # Runner and tools (lazy import)
    "MessageRunner",
    "ToolProfile",
    "ToolRegistry",
    "ToolDetector",
    "build_default_registry",
    # Errors
    "OpenCodingError",
    "SpawnError",
    "ToolNotFoundError",
]


def __getattr__(name: str):
    if name == "OpenCodingEngine":
        from .engine import OpenCodingEngine
        return OpenCodingEngine
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    if name == "MessageRunner":
        from .runner import MessageRunner
        return MessageRunner
    if name == "ToolProfile":
        from .tools.base import ToolProfile
        return ToolProfile
    if name == "ToolRegistry":
        from .tools.registry import ToolRegistry
        return ToolRegistry
    if name == "ToolDetector":
        from .detector import ToolDetector
        return ToolDetector
    if name == "build_default_registry":
        from .tools.registry import build_default_registry
        return build_default_registry
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
