from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .prompts import render_rule_prompt
from .schemas import Document, Judgment, Rule, Task

logger = logging.getLogger(__name__)

Transport = Callable[[str], Awaitable[str]]
PromptFn = Callable[[Rule, Document], str]

GENERIC_FIX = "Verify API key/org; try again."
QUOTA_RATIONALE = "LLM call failed: insufficient quota."


@dataclass
class EngineCfg:
    file_concurrency: int = 100
    rule_concurrency: int = 50
    attempts: int = 3
    base_delay_ms: float = 300.0
    jitter_ms: float = 200.0
    timeout_seconds: float = 120.0
    model: Optional[str] = None


class OracleError(Exception):
    """
    Normalized transport failure. Transports that wrap a vendor SDK may raise
    this with the HTTP-class status and, when known, the vendor error type
    (e.g. "insufficient_quota").
    """

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


@dataclass(frozen=True)
class RetryableFailure:
    message: str
    status: Optional[int] = None


@dataclass(frozen=True)
class FatalFailure:
    message: str
    status: Optional[int] = None
    insufficient_quota: bool = False


Failure = Union[RetryableFailure, FatalFailure]


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and not isinstance(val, bool):
            return val
    response = getattr(exc, "response", None)
    val = getattr(response, "status_code", None)
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    return None


def _error_type_of(exc: BaseException) -> Optional[str]:
    for attr in ("error_type", "type", "code"):
        val = getattr(exc, attr, None)
        if isinstance(val, str) and val:
            return val
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error") if isinstance(body.get("error"), dict) else body
        for key in ("type", "code"):
            val = inner.get(key)
            if isinstance(val, str) and val:
                return val
    return None


def _message_of(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def classify_error(exc: BaseException) -> Failure:
    """
    Map a transport error onto the fixed taxonomy:
      - insufficient_quota / 402 -> fatal (quota)
      - 429, >= 500, timeouts     -> retryable
      - anything else             -> fatal
    """
    status = _status_of(exc)
    err_type = _error_type_of(exc)
    message = _message_of(exc)

    if err_type == "insufficient_quota" or status == 402:
        return FatalFailure(message=message, status=status, insufficient_quota=True)
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return RetryableFailure(message="request timed out", status=504)
    if status is not None and (status == 429 or status >= 500):
        return RetryableFailure(message=message, status=status)
    return FatalFailure(message=message, status=status)


def backoff_delay_ms(attempt: int, base_ms: float, jitter_ms: float, rng: Optional[random.Random] = None) -> float:
    """Delay before the retry that follows failed attempt number `attempt` (1-based)."""
    r = rng or random
    jitter = r.uniform(0, jitter_ms) if jitter_ms > 0 else 0.0
    return base_ms * (2 ** (attempt - 1)) + jitter


def parse_judgment(raw: str, rule_id: str) -> Judgment:
    """
    Parse the model's JSON answer. Accepts surrounding prose by falling back
    to the first {...} region. The rule id always comes from the caller.
    """
    data: Any
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        match = re.search(r"\{.*\}", raw or "", flags=re.DOTALL)
        if not match:
            raise ValueError("No JSON object found in model output.")
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            raise ValueError(f"Output looked like JSON but failed to parse: {e}")

    if not isinstance(data, dict):
        raise ValueError("Model output is not a JSON object.")
    passed = data.get("pass")
    if not isinstance(passed, bool):
        raise ValueError(f"Model returned invalid 'pass': {passed!r} (expected boolean)")

    rationale = data.get("rationale")
    if not isinstance(rationale, str):
        rationale = "" if rationale is None else str(rationale)

    fixes = data.get("suggested_fixes")
    if fixes is None:
        fixes = []
    elif not isinstance(fixes, list):
        fixes = [fixes]

    return Judgment(rule_id=rule_id, passed=passed, rationale=rationale, suggested_fixes=fixes)


def failed_judgment(rule_id: str, failure: Failure) -> Judgment:
    if isinstance(failure, FatalFailure) and failure.insufficient_quota:
        rationale = QUOTA_RATIONALE
    else:
        rationale = f"LLM call failed: {failure.message}"
    return Judgment(rule_id=rule_id, passed=False, rationale=rationale, suggested_fixes=[GENERIC_FIX])


class OracleClient:
    """
    Issues one evaluation call per task with bounded retries.

    `evaluate` never raises for transport or parse problems: every failure is
    returned as a failing Judgment so the scheduler does not need per-task
    exception handling.
    """

    def __init__(
        self,
        transport: Transport,
        cfg: Optional[EngineCfg] = None,
        prompt_builder: Optional[PromptFn] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._transport = transport
        self._cfg = cfg or EngineCfg()
        self._prompt_builder = prompt_builder or render_rule_prompt
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.calls = 0

    async def _call_once(self, prompt: str) -> str:
        self.calls += 1
        timeout = self._cfg.timeout_seconds
        if timeout and timeout > 0:
            return await asyncio.wait_for(self._transport(prompt), timeout=timeout)
        return await self._transport(prompt)

    async def evaluate(self, task: Task) -> Judgment:
        rule_id = task.rule.id
        try:
            prompt = self._prompt_builder(task.rule, task.document)
        except Exception as e:
            logger.error(f"[ORACLE_PROMPT_ERROR] {task.document.path} :: {rule_id}: {e}")
            return failed_judgment(rule_id, FatalFailure(message=f"could not build prompt: {_message_of(e)}"))
        attempts = max(1, int(self._cfg.attempts))

        raw: Optional[str] = None
        failure: Optional[Failure] = None
        for attempt in range(1, attempts + 1):
            try:
                raw = await self._call_once(prompt)
                failure = None
                break
            except Exception as e:
                failure = classify_error(e)

            if isinstance(failure, FatalFailure):
                logger.warning(f"[ORACLE_FATAL] {task.document.path} :: {rule_id}: {failure.message}")
                return failed_judgment(rule_id, failure)

            if attempt < attempts:
                delay = backoff_delay_ms(attempt, self._cfg.base_delay_ms, self._cfg.jitter_ms, self._rng)
                logger.info(
                    f"[ORACLE_RETRY] {task.document.path} :: {rule_id}: {failure.message} "
                    f"(status={failure.status}, attempt {attempt}/{attempts}); waiting {delay:.0f} ms"
                )
                await self._sleep(delay / 1000.0)

        if failure is not None:
            logger.error(f"[ORACLE_EXHAUSTED] {task.document.path} :: {rule_id} after {attempts} attempts: {failure.message}")
            return failed_judgment(rule_id, failure)

        try:
            return parse_judgment(raw or "", rule_id)
        except ValueError as e:
            logger.warning(f"[ORACLE_BAD_RESPONSE] {task.document.path} :: {rule_id}: {e}")
            return failed_judgment(rule_id, FatalFailure(message=str(e)))

