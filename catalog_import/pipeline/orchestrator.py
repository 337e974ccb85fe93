"""Import orchestrator: drives every address through the pipeline in order.

    validate → fetch → parse → persist (relay + storage + insert)

One address at a time, with a fixed pause between addresses so the source
site and the unblocking relay are not hammered.  Every failure is converted
into a ``Failed`` outcome at the per-address boundary; a run never aborts
because of one bad address and never retries.

Usage::

    pipeline = build_pipeline(conn, client)
    run = pipeline.run(urls)
    for event in run:
        if event.log:
            print(event.log)
    run.outcomes   # one outcome per address, in input order
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from typing import Callable, Generator, Iterable, Iterator, Optional

import httpx

from catalog_import.config import settings
from catalog_import.errors import ErrorKind, ImportPipelineError, ParseError
from catalog_import.pipeline.models import (
    Failed,
    PipelineEvent,
    PipelineOutcome,
    PipelineProgress,
    RunState,
)
from catalog_import.pipeline.persistence import CatalogPersister
from catalog_import.scraper.fetcher import UnlockerFetcher
from catalog_import.scraper.models import ScrapedRecord
from catalog_import.scraper.parser import parse_product_page
from catalog_import.scraper.validator import is_valid_product_url

logger = logging.getLogger(__name__)

Validator = Callable[[str], bool]
Parser = Callable[[str, str], Optional[ScrapedRecord]]

# Generator type of a single address: yields events, returns its outcome.
_Step = Generator[PipelineEvent, None, PipelineOutcome]


def _log(message: str, progress: Optional[PipelineProgress] = None) -> PipelineEvent:
    logger.info(message)
    return PipelineEvent(log=message, progress=progress)


def _failed(url: str, exc: Exception, default_kind: ErrorKind) -> Failed:
    kind = getattr(exc, "kind", None) or default_kind
    detail = exc.detail if isinstance(exc, ImportPipelineError) else None
    return Failed(url=url, kind=kind, message=str(exc) or type(exc).__name__, detail=detail)


class ImportRun:
    """A single pass over an address list.

    Iterating the run drives it; nothing happens until the first ``next()``.
    ``outcomes`` and ``progress`` are updated as addresses complete.
    """

    def __init__(
        self,
        pipeline: "ImportPipeline",
        addresses: Iterable[str],
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.addresses: list[str] = list(addresses)
        self.outcomes: list[PipelineOutcome] = []
        self.progress = PipelineProgress(total=len(self.addresses))
        self.cancel = cancel
        self._events = pipeline._execute(self)

    def __iter__(self) -> Iterator[PipelineEvent]:
        return self

    def __next__(self) -> PipelineEvent:
        return next(self._events)

    @property
    def state(self) -> RunState:
        return self.progress.state

    def drain(self) -> list[PipelineOutcome]:
        """Consume every remaining event and return the outcome list."""
        for _ in self:
            pass
        return self.outcomes


class ImportPipeline:
    """Sequential import pipeline.

    Args:
        fetcher: Object with ``fetch(url) -> RawPage``.
        persister: Object with ``persist(record) -> Success | Skipped``.
        delay: Seconds to wait between two addresses.
        validator: Address predicate; defaults to
            :func:`~catalog_import.scraper.validator.is_valid_product_url`.
        parser: Markup parser; defaults to
            :func:`~catalog_import.scraper.parser.parse_product_page`.
    """

    def __init__(
        self,
        fetcher: UnlockerFetcher,
        persister: CatalogPersister,
        *,
        delay: float = 2.0,
        validator: Validator = is_valid_product_url,
        parser: Parser = parse_product_page,
    ) -> None:
        self.fetcher = fetcher
        self.persister = persister
        self.delay = delay
        self.validator = validator
        self.parser = parser

    def run(
        self,
        addresses: Iterable[str],
        cancel: Optional[threading.Event] = None,
    ) -> ImportRun:
        """Return an :class:`ImportRun` over *addresses*.

        Args:
            addresses: Source addresses, processed in the given order.
            cancel: Optional event; once set, the run stops before the next
                address (an ongoing pause is cut short).
        """
        return ImportRun(self, addresses, cancel)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pause(self, cancel: Optional[threading.Event]) -> None:
        if self.delay <= 0:
            return
        if cancel is not None:
            cancel.wait(self.delay)
        else:
            time.sleep(self.delay)

    def _execute(self, run: ImportRun) -> Iterator[PipelineEvent]:
        progress = run.progress
        total = progress.total
        progress.state = RunState.RUNNING

        yield _log(f"[START] Importing {total} address(es)", progress.snapshot())

        invalid = [url for url in run.addresses if not self.validator(url)]
        if invalid:
            yield _log(f"[VALIDATE] {len(invalid)} invalid address(es) will be marked failed")

        for index, url in enumerate(run.addresses):
            if run.cancel is not None and run.cancel.is_set():
                progress.state = RunState.CANCELLED
                yield _log(
                    f"[CANCELLED] Stopped after {progress.current_index} of {total}. "
                    f"Success: {progress.success_count}, "
                    f"Skipped: {progress.skipped_count}, "
                    f"Failed: {progress.failed_count}",
                    progress.snapshot(),
                )
                return

            progress.current_url = url
            outcome = yield from self._process(url, index + 1, total)
            run.outcomes.append(outcome)
            progress.record(outcome)
            yield PipelineEvent(progress=progress.snapshot())

            if index < total - 1 and self.delay > 0:
                yield _log(f"[WAIT] Waiting {self.delay:g}s before next request")
                self._pause(run.cancel)

        progress.state = RunState.COMPLETE
        yield _log(
            f"[DONE] Import complete. Success: {progress.success_count}, "
            f"Skipped: {progress.skipped_count}, Failed: {progress.failed_count}",
            progress.snapshot(),
        )

    def _process(self, url: str, position: int, total: int) -> _Step:
        yield _log(f"[{position}/{total}] {url}")

        if not self.validator(url):
            yield _log("[VALIDATE] ✗ Not a product page address")
            return Failed(url=url, kind=ErrorKind.VALIDATION, message="Invalid product page address")

        try:
            page = self.fetcher.fetch(url)
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, ImportPipelineError):
                logger.exception("Unexpected fetch failure for %s", url)
            yield _log(f"[FETCH] ✗ {exc}")
            return _failed(url, exc, ErrorKind.FETCH)
        yield _log(f"[FETCH] ✓ HTTP {page.status_code}, {len(page.html)} chars")

        try:
            record = self.parser(page.html, url)
            if record is None:
                raise ParseError("missing required field")
        except ParseError as exc:
            yield _log("[PARSE] ✗ Missing required field")
            return _failed(url, exc, ErrorKind.PARSE)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Parser crashed on %s", url)
            yield _log(f"[PARSE] ✗ {exc}")
            return _failed(url, exc, ErrorKind.PARSE)
        yield _log(f'[PARSE] ✓ "{record.title}" by {record.creator_handle}')

        try:
            outcome = self.persister.persist(record)
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, ImportPipelineError):
                logger.exception("Unexpected persistence failure for %s", url)
            yield _log(f"[PERSIST] ✗ {exc}")
            return _failed(url, exc, ErrorKind.PERSISTENCE)

        if outcome.status == "skipped":
            yield _log(f'[PERSIST] ⊘ Skipped "{record.title}" (already exists)')
        else:
            yield _log(f'[PERSIST] ✓ Added "{record.title}"')
        return outcome


def build_pipeline(
    conn: sqlite3.Connection,
    client: Optional[httpx.Client] = None,
    delay: Optional[float] = None,
) -> ImportPipeline:
    """Wire the production fetcher and persister from settings.

    Raises:
        ConfigurationError: If the unblocking relay API key is missing.
    """
    client = client or httpx.Client()
    return ImportPipeline(
        UnlockerFetcher.from_settings(client),
        CatalogPersister.from_settings(conn, client),
        delay=settings.request_delay if delay is None else delay,
    )
