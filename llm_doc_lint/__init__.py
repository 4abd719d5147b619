"""
llm_doc_lint package

LLM-judged Markdown linter. Every target document is checked against every
rule document; each (document, rule) judgment is one model call.

Subpackages:
- engine: oracle client (retry/backoff), task scheduler, aggregation,
  line recovery, metrics, prompt rendering
- loaders: target discovery and rule front-matter parsing
- models: LangChain model registry and transport adapter
- reporting: JSON and JUnit writers

Entry points: api.run_lint / api.lint, and the `llm-doc-lint` CLI.
"""
__all__ = [
    "api",
]
