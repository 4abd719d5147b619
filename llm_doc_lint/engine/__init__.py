"""
llm_doc_lint.engine

Evaluation engine: oracle client with retry/backoff, two-level task
scheduler, result aggregation, and best-effort line recovery for failing
judgments.
"""
__all__ = ["schemas", "oracle", "scheduler", "aggregator", "line_locator", "metrics", "prompts"]
