from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from langchain_core.tools import StructuredTool
from pydantic import BaseModel


logger = logging.getLogger(__name__)

TOOL_NAME = "getCurrentTime"

# Same rendering as the pt-BR locale: "19/10/2026, 14:05:09".
PT_BR_FORMAT = "%d/%m/%Y, %H:%M:%S"


class CurrentTimeInput(BaseModel):
    """The function takes no arguments."""


def format_current_time(now: datetime) -> str:
    return now.strftime(PT_BR_FORMAT)


def build_current_time_tool(
    timezone: str = "America/Sao_Paulo",
    clock: Optional[Callable[[ZoneInfo], datetime]] = None,
) -> StructuredTool:
    zone = ZoneInfo(timezone)
    now = clock or (lambda tz: datetime.now(tz))

    def _get_current_time() -> Dict[str, str]:
        logger.info("Local function %s called", TOOL_NAME)
        return {"currentTime": format_current_time(now(zone))}

    return StructuredTool.from_function(
        func=_get_current_time,
        name=TOOL_NAME,
        description="Retorna a data e hora atual no formato pt-BR",
        args_schema=CurrentTimeInput,
    )
