"""Converter process pool lifespan event."""

import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor

from msgjson.core.lifespan import BaseEvent
from msgjson.core.settings import settings as st


def create_process_pool(max_workers: int | None = None) -> ProcessPoolExecutor:
    """Create ProcessPoolExecutor with spawn context for asyncio compatibility."""
    ctx = mp.get_context("spawn")
    return ProcessPoolExecutor(
        max_workers=max_workers or mp.cpu_count(),
        mp_context=ctx,
    )


class ConverterPoolEvent(BaseEvent[ProcessPoolExecutor]):
    """Owns the pool that .msg parsing runs on, off the event loop."""

    name = "process_pool"

    async def startup(self) -> ProcessPoolExecutor:
        return create_process_pool(max_workers=st.MAX_WORKERS or None)

    async def shutdown(self, instance: ProcessPoolExecutor) -> None:
        instance.shutdown(wait=True, cancel_futures=True)
