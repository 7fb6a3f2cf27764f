"""Host platform probe for the output line terminator."""
from __future__ import annotations

import platform
from typing import Optional

WINDOWS_LINE_END = "\r\n"
UNIX_LINE_END = "\n"

_WINDOWS_LIKE = ("windows", "cygwin", "msys", "mingw")


def is_windows_like(system: str) -> bool:
    return system.strip().lower().startswith(_WINDOWS_LIKE)


def line_terminator(system: Optional[str] = None) -> str:
    """Line terminator of the host that is writing the file, probed on each call."""
    if system is None:
        system = platform.system()
    return WINDOWS_LINE_END if is_windows_like(system) else UNIX_LINE_END
