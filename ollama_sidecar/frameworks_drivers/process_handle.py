from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProcessHandle:
    """Represents the server process launched by a ProcessController."""

    process: asyncio.subprocess.Process
    port: int
    args: list[str]
    started_at: float = field(default_factory=time.time)
    output_tail: deque = field(default_factory=lambda: deque(maxlen=200))
    reader_tasks: list[asyncio.Task] = field(default_factory=list)
    waiter_task: Optional[asyncio.Task] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def is_alive(self) -> bool:
        return self.process.returncode is None

    def recent_output(self) -> str:
        """The last lines the server wrote to stdout/stderr."""
        return "\n".join(self.output_tail)
