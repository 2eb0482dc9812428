import logging
from collections import deque
from typing import Any, Deque, List
from avsim.application.commands import Command

logger = logging.getLogger(__name__)


class CommandQueue:
    """Commands queued between ticks; applied in arrival order at the start of the next tick."""

    def __init__(self):
        self.queue: Deque[Command] = deque()

    def add(self, command: Command):
        self.queue.append(command)

    def pop_all(self) -> Deque[Command]:
        commands = self.queue
        self.queue = deque()
        return commands

    def apply_all(self, kernel: Any) -> List[Any]:
        results = []
        commands = self.pop_all()
        while commands:
            cmd = commands.popleft()
            logger.debug("Applying %s", type(cmd).__name__)
            results.append(cmd.execute(kernel))
        return results

    def clear(self):
        self.queue.clear()

    def __len__(self) -> int:
        return len(self.queue)
