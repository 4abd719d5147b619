import pandas as pd

from .schemas import Summary


class Metrics:
    def outcomes_frame(self, summary: Summary) -> pd.DataFrame:
        """
        One row per (document, rule) outcome with columns:
        file, rule_id, passed, line, rationale.
        """
        rows = []
        for result in summary.document_results:
            for o in result.outcomes:
                rows.append({
                    "file": result.path,
                    "rule_id": o.rule_id,
                    "passed": o.passed,
                    "line": o.line,
                    "rationale": o.rationale,
                })
        return pd.DataFrame(rows, columns=["file", "rule_id", "passed", "line", "rationale"])

    def rule_failure_table(self, summary: Summary) -> pd.DataFrame:
        """
        Per-rule failure counts across all documents.

        Returns:
            pd.DataFrame: rule_id, checked, failed, failure_rate (percent),
                          sorted by failed (desc) then rule_id.
        """
        df = self.outcomes_frame(summary)
        if df.empty:
            return pd.DataFrame(columns=["rule_id", "checked", "failed", "failure_rate"])

        df["failed"] = ~df["passed"].astype(bool)
        table = df.groupby("rule_id").agg(
            checked=("passed", "size"),
            failed=("failed", "sum"),
        ).reset_index()
        table["failed"] = table["failed"].astype(int)
        table["failure_rate"] = (table["failed"] / table["checked"]) * 100
        return table.sort_values(["failed", "rule_id"], ascending=[False, True]).reset_index(drop=True)

    def document_table(self, summary: Summary) -> pd.DataFrame:
        """Per-document pass/fail counts in report order."""
        rows = []
        for result in summary.document_results:
            n_failed = len(result.failed_outcomes)
            rows.append({
                "file": result.path,
                "overall_pass": result.overall_pass,
                "passed": len(result.outcomes) - n_failed,
                "failed": n_failed,
                "failed_rules": ", ".join(o.rule_id for o in result.failed_outcomes),
            })
        return pd.DataFrame(rows, columns=["file", "overall_pass", "passed", "failed", "failed_rules"])
