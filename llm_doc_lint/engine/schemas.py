from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


SEVERITIES = ("error", "warn")


@dataclass(frozen=True)
class Document:
    """
    One target document. `text` may be left as None, in which case the
    scheduler reads `path` when the document is picked up.
    """
    path: str
    text: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    id: str
    criteria: str
    severity: str = "error"
    summary: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class Task:
    doc_index: int
    rule_index: int
    document: Document
    rule: Rule

    @property
    def key(self) -> tuple:
        return (self.doc_index, self.rule_index)


@dataclass
class Judgment:
    rule_id: str
    passed: bool
    rationale: str = ""
    suggested_fixes: List[Any] = field(default_factory=list)


@dataclass
class RuleOutcome:
    rule_id: str
    passed: bool
    rationale: str = ""
    suggested_fixes: List[Any] = field(default_factory=list)
    line: Optional[int] = None

    @classmethod
    def from_judgment(cls, judgment: Judgment, line: Optional[int] = None) -> "RuleOutcome":
        return cls(
            rule_id=judgment.rule_id,
            passed=judgment.passed,
            rationale=judgment.rationale,
            suggested_fixes=list(judgment.suggested_fixes),
            line=None if judgment.passed else line,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.rule_id,
            "pass": self.passed,
            "rationale": self.rationale,
            "suggested_fixes": list(self.suggested_fixes),
        }
        if self.line is not None:
            out["line"] = self.line
        return out


@dataclass
class DocumentResult:
    path: str
    overall_pass: bool
    outcomes: List[RuleOutcome] = field(default_factory=list)
    source: Optional[str] = None

    @classmethod
    def from_outcomes(cls, path: str, outcomes: List[RuleOutcome], source: Optional[str] = None) -> "DocumentResult":
        return cls(
            path=path,
            overall_pass=all(o.passed for o in outcomes),
            outcomes=outcomes,
            source=source,
        )

    @property
    def failed_outcomes(self) -> List[RuleOutcome]:
        return [o for o in self.outcomes if not o.passed]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "file": self.path,
            "overall_pass": self.overall_pass,
            "rules": [o.to_dict() for o in self.outcomes],
        }
        if self.source is not None:
            out["source"] = self.source
        return out


@dataclass
class Summary:
    checked: int
    passed: int
    failed: int
    document_results: List[DocumentResult] = field(default_factory=list)
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "checked": self.checked,
            "passed": self.passed,
            "failed": self.failed,
            "files": [r.to_dict() for r in self.document_results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Summary":
        """Rebuild a Summary from a JSON report written by `to_dict`."""
        results: List[DocumentResult] = []
        for f in data.get("files") or []:
            outcomes = [
                RuleOutcome(
                    rule_id=str(r.get("id", "")),
                    passed=bool(r.get("pass")),
                    rationale=r.get("rationale") or "",
                    suggested_fixes=list(r.get("suggested_fixes") or []),
                    line=r.get("line"),
                )
                for r in f.get("rules") or []
            ]
            results.append(
                DocumentResult(
                    path=str(f.get("file", "")),
                    overall_pass=bool(f.get("overall_pass")),
                    outcomes=outcomes,
                    source=f.get("source"),
                )
            )
        return cls(
            checked=int(data.get("checked", len(results))),
            passed=int(data.get("passed", 0)),
            failed=int(data.get("failed", 0)),
            document_results=results,
            model=data.get("model"),
        )


def judgment_schema() -> Dict[str, Any]:
    """
    Provider-agnostic JSON schema dict for a single rule judgment.
    `suggested_fixes` items are free-form: strings or objects such as
    {"quote": ..., "line": ...} or {"before": ..., "after": ...}.
    """
    return {
        "type": "object",
        "properties": {
            "id": {"type": "string"},
            "pass": {"type": "boolean"},
            "rationale": {"type": "string"},
            "suggested_fixes": {"type": "array"},
        },
        "required": ["id", "pass", "rationale", "suggested_fixes"],
    }
