"""In-memory vendor job store.

Tracks each analysis through processing -> complete | failed. Entries are
immutable snapshots; every transition swaps in a new entry under the lock,
and an entry in a terminal state is never replaced.
"""

import asyncio
import logging
import os
import random
import secrets
import string
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Literal

from vendor_risk_mcp.models import VendorAnalysisResult, utc_now_iso
from vendor_risk_mcp.pipeline.analyzer import run_vendor_pipeline
from vendor_risk_mcp.reasoning import ReasoningService, get_reasoning_service

logger = logging.getLogger(__name__)

PIPELINE_DEADLINE = float(os.environ.get("PIPELINE_DEADLINE", "180.0"))  # seconds
ESTIMATED_COMPLETION_SECONDS = 15

VendorStatus = Literal["processing", "complete", "failed"]
PipelineRunner = Callable[[str, str], Awaitable[VendorAnalysisResult]]

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_vendor_id() -> str:
    """'vnd_' followed by 8 characters from [a-z0-9]."""
    return "vnd_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(8))


@dataclass(frozen=True)
class VendorEntry:
    vendor_id: str
    vendor_name: str
    status: VendorStatus
    created_at: str
    error: str | None = None
    result: VendorAnalysisResult | None = None
    completed_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != "processing"


class VendorStore:
    """
    Concurrency-safe map of vendor id -> VendorEntry plus the background
    tasks running each pipeline.

    Args:
        runner: Coroutine function (vendor_id, vendor_name) -> result;
            defaults to the full pipeline with the process reasoning service
        deadline: Whole-pipeline deadline in seconds (default: PIPELINE_DEADLINE)
    """

    def __init__(
        self,
        runner: PipelineRunner | None = None,
        deadline: float | None = None,
        reasoning: ReasoningService | None = None,
        rng: random.Random | None = None,
    ):
        self._runner = runner
        self._reasoning = reasoning
        self._rng = rng
        self.deadline = PIPELINE_DEADLINE if deadline is None else deadline
        self._lock = threading.Lock()
        self._entries: dict[str, VendorEntry] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    async def _run(self, vendor_id: str, vendor_name: str) -> VendorAnalysisResult:
        if self._runner is not None:
            return await self._runner(vendor_id, vendor_name)
        return await run_vendor_pipeline(
            vendor_id,
            vendor_name,
            reasoning=self._reasoning or get_reasoning_service(),
            rng=self._rng,
        )

    # Lookups

    def get(self, vendor_id: str) -> VendorEntry | None:
        with self._lock:
            return self._entries.get(vendor_id)

    def get_result(self, vendor_id: str) -> VendorAnalysisResult | None:
        """Result of a completed run; None if missing, processing or failed."""
        entry = self.get(vendor_id)
        return entry.result if entry and entry.status == "complete" else None

    def get_multiple_results(self, vendor_ids: list[str]) -> list[VendorAnalysisResult | None]:
        return [self.get_result(vendor_id) for vendor_id in vendor_ids]

    def vendor_ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    # Lifecycle

    def _finish(
        self,
        vendor_id: str,
        *,
        result: VendorAnalysisResult | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            entry = self._entries.get(vendor_id)
            if entry is None or entry.is_terminal:
                return
            self._entries[vendor_id] = replace(
                entry,
                status="failed" if error is not None else "complete",
                error=error,
                result=result if error is None else None,
                completed_at=utc_now_iso(),
            )

    def trigger(self, vendor_name: str) -> dict:
        """
        Create a processing entry and start its pipeline in the background.

        Must be called from a running event loop. Returns immediately.
        """
        with self._lock:
            vendor_id = generate_vendor_id()
            while vendor_id in self._entries:
                vendor_id = generate_vendor_id()
            self._entries[vendor_id] = VendorEntry(
                vendor_id=vendor_id,
                vendor_name=vendor_name,
                status="processing",
                created_at=utc_now_iso(),
            )

        task = asyncio.get_running_loop().create_task(
            self._execute(vendor_id, vendor_name), name=f"vendor-pipeline-{vendor_id}"
        )
        self._tasks[vendor_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(vendor_id, None))
        logger.info(f"trigger({vendor_name!r}): {vendor_id}")

        return {
            "vendor_id": vendor_id,
            "vendor_name": vendor_name,
            "status": "processing",
            "estimated_completion_seconds": ESTIMATED_COMPLETION_SECONDS,
        }

    async def _execute(self, vendor_id: str, vendor_name: str) -> None:
        try:
            result = await asyncio.wait_for(
                self._run(vendor_id, vendor_name), timeout=self.deadline
            )
        except TimeoutError:
            logger.error(f"pipeline({vendor_id}): exceeded {self.deadline:g}s deadline")
            self._finish(
                vendor_id, error=f"Analysis exceeded the {self.deadline:g}s deadline."
            )
        except asyncio.CancelledError:
            logger.warning(f"pipeline({vendor_id}): cancelled")
            self._finish(vendor_id, error="Analysis was cancelled.")
            raise
        except Exception as e:
            logger.exception(f"pipeline({vendor_id}): failed: {e}")
            self._finish(vendor_id, error=str(e) or type(e).__name__)
        else:
            self._finish(vendor_id, result=result)
            logger.info(f"pipeline({vendor_id}): {vendor_name!r} -> {result.ticker} complete")

    async def wait(self, vendor_id: str) -> VendorEntry | None:
        """Wait for the vendor's run to reach a terminal state."""
        task = self._tasks.get(vendor_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self.get(vendor_id)

    async def shutdown(self) -> None:
        """Cancel outstanding runs and wait for them to settle."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"shutdown: cancelled {len(tasks)} pipeline(s)")


vendor_store = VendorStore()
