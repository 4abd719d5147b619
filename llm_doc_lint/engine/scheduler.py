from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..loaders.text_loader import read_document_text
from .line_locator import locate_line
from .oracle import OracleClient
from .schemas import Document, DocumentResult, Rule, RuleOutcome, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENGINE_ERROR_ID = "engine_error"


async def run_pool(factories: Sequence[Callable[[], Awaitable[T]]], limit: int) -> List[T]:
    """
    Run coroutine factories with at most `limit` in flight.

    Workers pull the next unclaimed index from a shared queue until it is
    empty; each result is stored at the index it was claimed for, so the
    output order matches `factories` whatever the completion order. If a
    factory raises, the other workers are cancelled and awaited before the
    error propagates.
    """
    results: List[Any] = [None] * len(factories)
    if not factories:
        return results

    cursor: asyncio.Queue = asyncio.Queue()
    for idx in range(len(factories)):
        cursor.put_nowait(idx)

    async def worker() -> None:
        while True:
            try:
                idx = cursor.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[idx] = await factories[idx]()

    n_workers = min(max(1, int(limit)), len(factories))
    workers = [asyncio.ensure_future(worker()) for _ in range(n_workers)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return results


def engine_error_result(path: str, exc: BaseException) -> DocumentResult:
    outcome = RuleOutcome(
        rule_id=ENGINE_ERROR_ID,
        passed=False,
        rationale=f"Engine error: {str(exc) or type(exc).__name__}",
        suggested_fixes=[],
        line=1,
    )
    return DocumentResult(path=path, overall_pass=False, outcomes=[outcome])


class TaskScheduler:
    """
    Expands documents x rules into tasks and runs them in two nested pools:
    up to `file_concurrency` documents at once, and within each document up
    to `rule_concurrency` rule evaluations at once.
    """

    def __init__(self, oracle: OracleClient, file_concurrency: int = 100, rule_concurrency: int = 50):
        self.oracle = oracle
        self.file_concurrency = max(1, int(file_concurrency))
        self.rule_concurrency = max(1, int(rule_concurrency))

    async def _run_task(self, task: Task) -> RuleOutcome:
        start = time.monotonic()
        judgment = await self.oracle.evaluate(task)
        line: Optional[int] = None
        if not judgment.passed:
            line = locate_line(task.document.text, judgment.suggested_fixes)
        outcome = RuleOutcome.from_judgment(judgment, line=line)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        status = "PASS" if outcome.passed else "FAIL"
        logger.info(f"  [{task.document.path}] {task.rule.id}  {status}  ({elapsed_ms} ms)")
        if not outcome.passed:
            logger.info(f"      rationale: {outcome.rationale} (line {outcome.line})")
        return outcome

    async def lint_document(self, doc_index: int, document: Document, rules: Sequence[Rule]) -> DocumentResult:
        if document.text is None:
            document = Document(path=document.path, text=read_document_text(document.path))

        tasks = [
            Task(doc_index=doc_index, rule_index=rule_index, document=document, rule=rule)
            for rule_index, rule in enumerate(rules)
        ]
        outcomes = await run_pool([lambda t=t: self._run_task(t) for t in tasks], self.rule_concurrency)

        result = DocumentResult.from_outcomes(document.path, outcomes, source=document.text)
        n_failed = len(result.failed_outcomes)
        logger.info(
            f"[{document.path}] Summary: {len(outcomes) - n_failed} passed, {n_failed} failed"
        )
        return result

    async def _lint_isolated(self, doc_index: int, document: Document, rules: Sequence[Rule]) -> DocumentResult:
        try:
            return await self.lint_document(doc_index, document, rules)
        except Exception as e:
            logger.error(f"[ENGINE_ERROR] {document.path}: {e}")
            return engine_error_result(document.path, e)

    async def run(self, documents: Sequence[Document], rules: Sequence[Rule]) -> List[DocumentResult]:
        logger.info(
            f"[SCHEDULE] {len(documents)} documents x {len(rules)} rules "
            f"(file_concurrency={self.file_concurrency}, rule_concurrency={self.rule_concurrency})"
        )
        factories = [
            (lambda i=i, d=d: self._lint_isolated(i, d, rules))
            for i, d in enumerate(documents)
        ]
        return await run_pool(factories, self.file_concurrency)
