from agent.tools.current_time import build_current_time_tool
from agent.tools.registry import (
    FunctionCallRequest,
    FunctionRegistry,
    FunctionResult,
    not_found_payload,
)


def build_registry(timezone: str = "America/Sao_Paulo") -> FunctionRegistry:
    return FunctionRegistry([build_current_time_tool(timezone)])


__all__ = [
    "FunctionCallRequest",
    "FunctionRegistry",
    "FunctionResult",
    "build_current_time_tool",
    "build_registry",
    "not_found_payload",
]
