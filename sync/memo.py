from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional


@dataclass
class _Slot:
    value: Any = None
    loaded_at: Optional[float] = None
    pending: Optional[asyncio.Future] = field(default=None, repr=False)


class InFlightMemo:
    """Key -> {value, in-flight future} map that coalesces concurrent loads.

    With ``ttl=0`` nothing is cached; only overlapping calls share a load.
    """

    def __init__(self, ttl: float = 0.0):
        self.ttl = ttl
        self._slots: Dict[Hashable, _Slot] = {}

    async def get(self, key: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        slot = self._slots.setdefault(key, _Slot())
        if slot.pending is not None:
            return await asyncio.shield(slot.pending)
        if slot.loaded_at is not None and time.monotonic() - slot.loaded_at < self.ttl:
            return slot.value

        future = asyncio.get_running_loop().create_future()
        slot.pending = future
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited failure is not reported as unhandled.
            future.exception()
            raise
        else:
            future.set_result(value)
            slot.value = value
            slot.loaded_at = time.monotonic()
            return value
        finally:
            slot.pending = None

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        if key is None:
            self._slots.clear()
        else:
            self._slots.pop(key, None)
