"""Batch Scheduler for bounded-concurrency page processing.

Pages are split into contiguous groups of at most ``group_size``. Groups run
one after another; the pages inside a group run concurrently, so at most
``group_size`` pages are ever in flight.
"""

import asyncio
import logging
from typing import List, Sequence, TypeVar

from storyboard_swarm.orchestrator.page_worker import PageWorker
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import PageContent, PageResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_GROUP_SIZE = 5


def chunk_pages(pages: Sequence[T], size: int) -> List[List[T]]:
    """Partition ``pages`` into ordered groups of at most ``size``.

    Raises:
        ValueError: If size is less than 1
    """
    if size < 1:
        raise ValueError(f"group size must be at least 1, got {size}")
    return [list(pages[i:i + size]) for i in range(0, len(pages), size)]


class BatchScheduler:
    """Runs a PageWorker over all pages, one group at a time."""

    def __init__(self, worker: PageWorker, group_size: int = DEFAULT_GROUP_SIZE):
        if group_size < 1:
            raise ValueError(f"group size must be at least 1, got {group_size}")
        self.worker = worker
        self.group_size = group_size

    async def run_all(self, pages: Sequence[PageContent], context: ContextPacket) -> List[PageResult]:
        """Process every page.

        Returns:
            One PageResult per page, sorted by page number
        """
        groups = chunk_pages(pages, self.group_size)
        results: List[PageResult] = []

        for index, group in enumerate(groups, start=1):
            logger.info(
                f"Processing batch {index}/{len(groups)}: "
                f"pages {', '.join(str(p.page) for p in group)}"
            )
            results.extend(
                await asyncio.gather(*(self.worker.process(page, context) for page in group))
            )

        return sorted(results, key=lambda r: r.page)
