import asyncio
import logging
import os
from typing import Any, Dict, Optional, Sequence

import yaml

from .engine.aggregator import aggregate
from .engine.oracle import EngineCfg, OracleClient, OracleError, PromptFn, Transport
from .engine.scheduler import TaskScheduler
from .engine.schemas import Document, Rule, Summary

logger = logging.getLogger(__name__)

__all__ = [
    "EngineCfg",
    "OracleError",
    "build_engine_cfg",
    "lint",
    "load_config",
    "run_lint",
]


# --- Config -------------------------------------------------------------------

PACKAGED_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")


def default_config_path() -> str:
    """`config.yaml` in the working directory when present, else the packaged defaults."""
    local = os.path.abspath("config.yaml")
    if os.path.isfile(local):
        return local
    return PACKAGED_CONFIG_PATH


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    cfg_path = config_path or default_config_path()
    if not os.path.exists(cfg_path):
        raise FileNotFoundError(f"llm-doc-lint config.yaml not found at: {cfg_path}")
    with open(cfg_path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config.yaml must contain a mapping at the top level: {cfg_path}")
    return data


def _setting(section: Dict[str, Any], key: str, default: Any) -> Any:
    # A key present but left empty in YAML loads as None.
    val = section.get(key)
    return default if val is None else val


def build_engine_cfg(cfg: Optional[Dict[str, Any]] = None, **overrides: Any) -> EngineCfg:
    """
    Map config.yaml sections onto an EngineCfg. Keyword overrides (e.g. from
    CLI flags) win over the file; None overrides are ignored.
    """
    cfg = cfg or {}
    conc = cfg.get("concurrency") or {}
    rt = cfg.get("retries") or {}
    llm = cfg.get("llm_api") or {}
    defaults = EngineCfg()

    engine_cfg = EngineCfg(
        file_concurrency=int(_setting(conc, "file_concurrency", defaults.file_concurrency)),
        rule_concurrency=int(_setting(conc, "rule_concurrency", defaults.rule_concurrency)),
        attempts=int(_setting(rt, "attempts", defaults.attempts)),
        base_delay_ms=float(_setting(rt, "base_delay_ms", defaults.base_delay_ms)),
        jitter_ms=float(_setting(rt, "jitter_ms", defaults.jitter_ms)),
        timeout_seconds=float(_setting(llm, "timeout_seconds", defaults.timeout_seconds)),
        model=cfg.get("model") or defaults.model,
    )
    for key, val in overrides.items():
        if val is None:
            continue
        if not hasattr(engine_cfg, key):
            raise ValueError(f"Unknown engine option: {key}")
        setattr(engine_cfg, key, val)
    engine_cfg.file_concurrency = max(1, int(engine_cfg.file_concurrency))
    engine_cfg.rule_concurrency = max(1, int(engine_cfg.rule_concurrency))
    engine_cfg.attempts = max(1, int(engine_cfg.attempts))
    return engine_cfg


# --- Public API -----------------------------------------------------------------

async def run_lint(
    documents: Sequence[Document],
    rules: Sequence[Rule],
    transport: Transport,
    cfg: Optional[EngineCfg] = None,
    prompt_builder: Optional[PromptFn] = None,
) -> Summary:
    """
    Evaluate every document against every rule and return the Summary.

    Task-level and document-level failures are folded into the Summary as
    failing outcomes; nothing raised by the oracle crosses this boundary.
    """
    engine_cfg = cfg or EngineCfg()
    oracle = OracleClient(transport, engine_cfg, prompt_builder=prompt_builder)
    scheduler = TaskScheduler(
        oracle,
        file_concurrency=engine_cfg.file_concurrency,
        rule_concurrency=engine_cfg.rule_concurrency,
    )
    logger.info(f"[LINT_START] {len(documents)} documents, {len(rules)} rules, model={engine_cfg.model}")
    results = await scheduler.run(documents, rules)
    summary = aggregate(results, model=engine_cfg.model)
    logger.info(
        f"[LINT_DONE] checked={summary.checked} passed={summary.passed} "
        f"failed={summary.failed} oracle_calls={oracle.calls}"
    )
    return summary


def lint(
    documents: Sequence[Document],
    rules: Sequence[Rule],
    transport: Transport,
    cfg: Optional[EngineCfg] = None,
    prompt_builder: Optional[PromptFn] = None,
) -> Summary:
    """Synchronous wrapper around run_lint for callers outside an event loop."""
    return asyncio.run(run_lint(documents, rules, transport, cfg=cfg, prompt_builder=prompt_builder))
