from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from langchain_core.tools import BaseTool


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionCallRequest:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None


@dataclass(frozen=True)
class FunctionResult:
    name: str
    payload: Dict[str, Any]
    call_id: Optional[str] = None


def not_found_payload(name: str) -> Dict[str, str]:
    return {"error": f"Function {name} not implemented or found."}


class FunctionRegistry:
    """Read-only mapping from function name to the tool that implements it.

    The tools double as the descriptors sent to the model: each carries its
    name, description and argument schema.
    """

    def __init__(self, tools: Iterable[BaseTool]):
        by_name: Dict[str, BaseTool] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"Duplicate function name: {tool.name!r}")
            by_name[tool.name] = tool
        self._tools: Mapping[str, BaseTool] = MappingProxyType(by_name)

    @property
    def tools(self) -> Tuple[BaseTool, ...]:
        return tuple(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def lookup(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def invoke(self, request: FunctionCallRequest) -> FunctionResult:
        tool = self.lookup(request.name)
        if tool is None:
            logger.warning(
                "Function %s requested by the model but not registered", request.name
            )
            payload: Dict[str, Any] = not_found_payload(request.name)
        else:
            output = tool.invoke(request.arguments or {})
            payload = dict(output) if isinstance(output, Mapping) else {"result": output}
            logger.info("Function %s returned %s", request.name, payload)
        return FunctionResult(name=request.name, payload=payload, call_id=request.call_id)
