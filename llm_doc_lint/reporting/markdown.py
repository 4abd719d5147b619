import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from ..engine.schemas import DocumentResult, RuleOutcome, Summary
from .junit import normalize_fix

logger = logging.getLogger("lint")

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
REPORT_TEMPLATE = "report.md.jinja"

MAX_FAILED_FIXES = 5
MAX_PASS_NOTES = 3


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _oneline(s: Any) -> str:
    return re.sub(r"\r?\n", " ", str(s))


def _fence_safe(md: str) -> str:
    # keep embedded ``` from closing the surrounding fence
    return md.replace("```", "``\\`")


def _rule_view(outcome: RuleOutcome, max_fixes: int) -> Dict[str, Any]:
    fixes = [s for s in (normalize_fix(fx) for fx in outcome.suggested_fixes) if s]
    return {
        "id": outcome.rule_id,
        "line": outcome.line or 1,
        "rationale": _oneline(outcome.rationale) if outcome.rationale else "",
        "fixes": [_oneline(s) for s in fixes[:max_fixes]],
        "more": max(0, len(fixes) - max_fixes),
    }


def _file_view(result: DocumentResult) -> Dict[str, Any]:
    name = os.path.basename(result.path)
    failed = result.failed_outcomes
    return {
        "name": name,
        "anchor": f"stage-{slugify(name)}",
        "ok": result.overall_pass,
        "n_passed": len(result.outcomes) - len(failed),
        "n_failed": len(failed),
        "failed_ids": ", ".join(f"`{o.rule_id}`" for o in failed),
        "failed": [_rule_view(o, MAX_FAILED_FIXES) for o in failed],
        "passed": [_rule_view(o, MAX_PASS_NOTES) for o in result.outcomes if o.passed],
        "source": _fence_safe(result.source.rstrip("\n")) if result.source else None,
    }


def render_markdown_report(
    summary: Summary,
    show_pass_details: bool = False,
    include_source: bool = False,
    expand_source: bool = False,
    generated: Optional[str] = None,
) -> str:
    """
    Render the human-facing Markdown report: a summary table linking to one
    section per document, failed rules with line, rationale and suggested
    fixes, then the passed rules.

    Args:
        show_pass_details (bool): Include rationale/notes for passing rules.
        include_source (bool): Embed each document's source in a <details> block.
        expand_source (bool): Render those <details> blocks open.
        generated (str): Timestamp shown in the header (default: now).
    """
    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    template = env.get_template(REPORT_TEMPLATE)
    files: List[Dict[str, Any]] = [_file_view(r) for r in summary.document_results]
    return template.render(
        generated=generated or datetime.now().strftime("%b %d, %Y %H:%M"),
        model=summary.model,
        checked=summary.checked,
        passed=summary.passed,
        failed=summary.failed,
        files=files,
        show_pass_details=show_pass_details,
        include_source=include_source,
        expand_source=expand_source,
    )


def write_markdown_report(summary: Summary, path: str, **options: Any) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(render_markdown_report(summary, **options))
    logger.info(f"[MARKDOWN_REPORT] Wrote Markdown report to {path}")
    return path
