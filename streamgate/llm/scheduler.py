"""
Timed fragment producer.

Gives providers that answer in one piece the same incremental delivery as
natively streaming ones. The delay and the sleep function are injected so
tests can run it without waiting.
"""

import asyncio
import re
from typing import AsyncIterator, Awaitable, Callable, Iterable, List

SleepFunc = Callable[[float], Awaitable[None]]

_WORD_RE = re.compile(r"[^ ]+ *| +")


def split_words(text: str) -> List[str]:
    """
    Split text into word fragments.

    Each fragment is a word with the spaces after it (leading spaces form a
    fragment of their own), so joining the fragments gives back the original
    text exactly and no fragment is empty.

    Args:
        text: Full answer text

    Returns:
        Ordered fragments
    """
    return _WORD_RE.findall(text)


class FragmentScheduler:
    """
    Emits fragments with a fixed pause between them.

    The producer is an async generator; closing it or cancelling the task
    that iterates it stops emission at the next pause.
    """

    def __init__(self, delay_seconds: float = 0.05, sleep: SleepFunc = asyncio.sleep):
        """
        Initialize scheduler.

        Args:
            delay_seconds: Pause between consecutive fragments
            sleep: Awaitable sleep used for the pause
        """
        self._delay_seconds = delay_seconds
        self._sleep = sleep

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    async def play(self, fragments: Iterable[str]) -> AsyncIterator[str]:
        """
        Yield fragments in order, pausing between them.

        Args:
            fragments: Fragments to emit

        Yields:
            Each fragment
        """
        for index, fragment in enumerate(fragments):
            if index and self._delay_seconds > 0:
                await self._sleep(self._delay_seconds)
            yield fragment
