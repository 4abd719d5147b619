import json
import logging
import os
from typing import Any, List, Optional
from xml.sax.saxutils import escape, quoteattr

from ..engine.schemas import DocumentResult, RuleOutcome, Summary

logger = logging.getLogger("lint")

MAX_FIXES = 20


def to_repo_rel(path: str, repo_root: Optional[str] = None) -> str:
    p = str(path).replace("\\", "/")
    root = (repo_root or "").replace("\\", "/").rstrip("/")
    if root and p.startswith(root + "/"):
        p = p[len(root) + 1:]
    if p.startswith("./"):
        p = p[2:]
    return p


def normalize_fix(fx: Any) -> str:
    """
    Render one suggested fix as a single human-readable line. Models return
    fixes in several shapes; the most precise one present wins.
    """
    if fx is None:
        return ""
    if isinstance(fx, str):
        return fx.strip()
    if not isinstance(fx, dict):
        return str(fx)

    if fx.get("line") is not None or fx.get("before") or fx.get("after") or fx.get("heading"):
        prefix = f"line {fx['line']}: " if fx.get("line") is not None else ""
        before, after = fx.get("before"), fx.get("after")
        if before and after:
            return f'{prefix}"{before}" → "{after}"'.strip()
        if after:
            return f'{prefix}replace with "{after}"'.strip()
        if before:
            return f'{prefix}replace "{before}" (after: missing)'.strip()
        if fx.get("heading"):
            return f'{prefix}set heading to "{fx["heading"]}"'.strip()

    if fx.get("match") or fx.get("replace_with"):
        m = f'"{fx["match"]}"' if fx.get("match") else "pattern"
        r = f'"{fx["replace_with"]}"' if fx.get("replace_with") else "replacement"
        return f"replace {m} → {r}"

    if fx.get("original") or fx.get("suggestion") or fx.get("explanation"):
        lhs = f'"{fx["original"]}"' if fx.get("original") else ""
        rhs = f'"{fx["suggestion"]}"' if fx.get("suggestion") else ""
        expl = f" ({fx['explanation']})" if fx.get("explanation") else ""
        if lhs and rhs:
            return f"change {lhs} → {rhs}{expl}"
        if rhs:
            return f"change to {rhs}{expl}"
        if lhs:
            return f"change {lhs}{expl}"

    if fx.get("quote"):
        return f'at "{fx["quote"]}"'

    try:
        return json.dumps(fx, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(fx)


def _testcase(outcome: RuleOutcome, rel: str) -> str:
    line = outcome.line or 1
    head = (
        f"<testcase name={quoteattr(outcome.rule_id)} classname={quoteattr(rel)} "
        f"file={quoteattr(rel)} line=\"{line}\">"
    )
    if outcome.passed:
        return head + "</testcase>"

    fixes = [s for s in (normalize_fix(fx) for fx in outcome.suggested_fixes) if s]
    message = outcome.rationale or "Failed rule"
    if fixes:
        message = f"{message} — {fixes[0]}"

    body: List[str] = []
    if outcome.rationale:
        body.append(f"rationale: {outcome.rationale}")
    if fixes:
        body.append("suggested fixes:")
        body.extend(f"- {s}" for s in fixes[:MAX_FIXES])
        if len(fixes) > MAX_FIXES:
            body.append(f"- +{len(fixes) - MAX_FIXES} more")

    return (
        head
        + f"\n  <failure message={quoteattr(message)}>{escape(chr(10).join(body))}</failure>\n"
        + "</testcase>"
    )


def _testsuite(result: DocumentResult, repo_root: Optional[str]) -> str:
    rel = to_repo_rel(result.path, repo_root)
    failures = len(result.failed_outcomes)
    cases = "\n".join(_testcase(o, rel) for o in result.outcomes)
    return (
        f"<testsuite name={quoteattr(rel)} tests=\"{len(result.outcomes)}\" failures=\"{failures}\">\n"
        f"{cases}\n"
        "</testsuite>"
    )


def render_junit(summary: Summary, repo_root: Optional[str] = None) -> str:
    tests = sum(len(r.outcomes) for r in summary.document_results)
    failures = sum(len(r.failed_outcomes) for r in summary.document_results)
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<testsuites name="llm-doc-lint" tests="{tests}" failures="{failures}">',
    ]
    parts.extend(_testsuite(r, repo_root) for r in summary.document_results)
    parts.append("</testsuites>")
    return "\n".join(parts) + "\n"


def write_junit_report(summary: Summary, path: str, repo_root: Optional[str] = None) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(render_junit(summary, repo_root=repo_root))
    logger.info(f"[JUNIT_EXPORT] Wrote JUnit to {path}")
    return path
