"""
Background parsing.

Parser and classifier run in an executor so the event loop stays responsive
while large playlists are processed. Raw text goes in and a plain-data
message comes back; nothing is shared with the caller by reference.
"""
import asyncio
import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from m3u_catalog.errors import BackgroundParseError
from m3u_catalog.models.catalog import CategorizedTree
from m3u_catalog.services.classifier import Classifier
from m3u_catalog.services.m3u_parser import M3UParser

logger = logging.getLogger(__name__)


def parse_and_classify(content: str) -> dict:
    """Executor entry point: parse playlist text and classify every record."""
    parser = M3UParser()
    records = parser.parse_text(content)
    classifier = Classifier()
    tree = classifier.classify_all(records)
    return {
        "tree": tree.model_dump(),
        "records": len(records),
        "malformed_lines": len(parser.errors),
        "fallbacks": classifier.failures,
    }


@dataclass
class ParseResult:
    tree: CategorizedTree
    records: int
    malformed_lines: int
    fallbacks: int
    elapsed: float


class BackgroundParser:
    """Runs parse_and_classify off the event loop, one parse at a time."""

    def __init__(self, mode: str = "process", executor: Optional[Executor] = None):
        self.mode = mode
        self._executor = executor
        self._owns_executor = executor is None

    def _get_executor(self) -> Executor:
        if self._executor is None:
            if self.mode == "process":
                self._executor = ProcessPoolExecutor(max_workers=1)
            else:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="m3u-parse")
        return self._executor

    async def run(self, content: str) -> ParseResult:
        """Parse and classify content in the background executor."""
        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        logger.info(f"Starting background parse of {len(content)} characters ({self.mode})")

        try:
            message = await loop.run_in_executor(self._get_executor(), parse_and_classify, content)
            tree = CategorizedTree.model_validate(message["tree"])
        except Exception as e:
            logger.error(f"Background parse failed: {e}", exc_info=True)
            if self._owns_executor:
                # A crashed process pool cannot be reused
                self.shutdown()
            raise BackgroundParseError(f"Erro ao processar a lista M3U: {e}") from e

        elapsed = time.perf_counter() - started
        logger.info(
            f"Background parse finished in {elapsed:.2f}s: {message['records']} records, "
            f"{message['malformed_lines']} malformed lines, {message['fallbacks']} fallbacks"
        )
        return ParseResult(
            tree=tree,
            records=message["records"],
            malformed_lines=message["malformed_lines"],
            fallbacks=message["fallbacks"],
            elapsed=elapsed,
        )

    def shutdown(self):
        """Release the executor if this parser created it."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
