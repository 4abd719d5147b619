import asyncio
import logging
import os
from typing import List, Optional

import typer

from .api import build_engine_cfg, load_config, run_lint
from .engine.metrics import Metrics
from .engine.schemas import Summary
from .loaders.rule_loader import load_all_rules
from .loaders.text_loader import discover_targets, load_documents
from .reporting import write_json_report, write_junit_report, write_markdown_report
from .reporting.json_report import read_json_report

app = typer.Typer(help="LLM Doc Linter: judge Markdown documents against rule documents.")

DEFAULT_REPORT_PATH = os.path.join("reports", "lint.json")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def _print_console_report(summary: Summary) -> None:
    hr = "─" * 70
    typer.echo("\n" + hr)
    typer.echo("LLM Doc Linter Report")
    typer.echo(
        f"Model: {summary.model}  •  Files: {summary.checked}  •  "
        f"{summary.passed} passed  •  {summary.failed} failed"
    )
    typer.echo(hr)
    for result in summary.document_results:
        icon = "✅" if result.overall_pass else "❌"
        n_failed = len(result.failed_outcomes)
        typer.echo(f"\n{icon} {result.path}  ({len(result.outcomes) - n_failed} passed, {n_failed} failed)")
        for o in result.failed_outcomes:
            typer.secho(f"    ✖ {o.rule_id} (line {o.line})", fg=typer.colors.RED)
            if o.rationale:
                typer.echo(f"      • rationale: {o.rationale}")
    typer.echo("\n" + hr)
    if summary.failed:
        typer.secho("Result: FAIL", fg=typer.colors.RED, bold=True)
    else:
        typer.secho("Result: PASS", fg=typer.colors.GREEN, bold=True)


@app.command()
def run(
    targets: Optional[List[str]] = typer.Argument(None, help="Explicit Markdown files to lint."),
    only: Optional[str] = typer.Option(None, help="Glob for targets when none are given (default: stage_descriptions/**/*.md)."),
    rules_dir: str = typer.Option("rules", "--rules", help="Directory of rule Markdown files."),
    config: Optional[str] = typer.Option(None, help="Path to config.yaml."),
    model: Optional[str] = typer.Option(None, envvar="LLM_LINT_MODEL", help="Model name (e.g. gpt-5, gemini-2.5-flash)."),
    report: Optional[str] = typer.Option(None, envvar="REPORT_PATH", help=f"JSON report path (default: {DEFAULT_REPORT_PATH})."),
    no_report: bool = typer.Option(False, "--no-report", help="Do not write the JSON or Markdown report."),
    markdown: Optional[str] = typer.Option(None, help="Markdown report path (default: the JSON report path with a .md extension)."),
    show_pass_details: bool = typer.Option(False, "--show-pass-details", help="Include rationale notes for passing rules in the Markdown report."),
    include_source: bool = typer.Option(False, "--include-source", help="Embed each document's source in the Markdown report."),
    expand_source: bool = typer.Option(False, "--expand-source", help="Render embedded sources expanded."),
    junit: Optional[str] = typer.Option(None, help="Also write a JUnit XML report to this path."),
    repo_root: Optional[str] = typer.Option(None, envvar="REPO_ROOT", help="Strip this prefix from paths in JUnit output."),
    file_concurrency: Optional[int] = typer.Option(None, envvar="FILE_CONCURRENCY", help="Max documents in flight."),
    rule_concurrency: Optional[int] = typer.Option(None, envvar="RULE_CONCURRENCY", help="Max rule calls in flight per document."),
    export_csv: Optional[str] = typer.Option(None, help="Write the per-rule failure table to this CSV path."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Lints every target against every rule and exits 1 if any document fails.
    """
    from .models.registry import DEFAULT_MODEL, LangChainTransport, get_llm

    _configure_logging(verbose)

    paths = [os.path.abspath(t) for t in targets] if targets else discover_targets(only)
    if not paths:
        typer.echo("No Markdown files found for the given targets.")
        raise typer.Exit(code=0)

    rules = load_all_rules(os.path.abspath(rules_dir))
    if not rules:
        typer.echo(f"No rules found under '{rules_dir}'. Nothing to do.")
        raise typer.Exit(code=1)

    cfg_data = load_config(config)
    engine_cfg = build_engine_cfg(
        cfg_data,
        model=model,
        file_concurrency=file_concurrency,
        rule_concurrency=rule_concurrency,
    )
    if not engine_cfg.model:
        engine_cfg.model = DEFAULT_MODEL
    temperature = (cfg_data.get("judge_defaults") or {}).get("temperature")
    temperature = 1.0 if temperature is None else float(temperature)

    transport = LangChainTransport(get_llm(engine_cfg.model, temperature=temperature))
    documents = load_documents(paths)
    summary = asyncio.run(run_lint(documents, rules, transport, cfg=engine_cfg))

    if not no_report:
        report_path = report or DEFAULT_REPORT_PATH
        write_json_report(summary, report_path)
        write_markdown_report(
            summary,
            markdown or os.path.splitext(report_path)[0] + ".md",
            show_pass_details=show_pass_details,
            include_source=include_source,
            expand_source=expand_source,
        )
    if junit:
        write_junit_report(summary, junit, repo_root=repo_root)
    if export_csv:
        Metrics().rule_failure_table(summary).to_csv(export_csv, index=False)
        typer.echo(f"Exported per-rule failure table to {export_csv}")

    _print_console_report(summary)
    raise typer.Exit(code=1 if summary.failed else 0)


@app.command()
def summary(
    report: str = typer.Argument(DEFAULT_REPORT_PATH, help="JSON report written by `run`."),
):
    """
    Displays per-document and per-rule failure tables from a JSON report.
    """
    if not os.path.exists(report):
        typer.echo(f"Error: report not found at {report}. Please run 'run' first.")
        raise typer.Exit(code=1)

    data = read_json_report(report)
    metrics = Metrics()
    typer.echo(f"Model: {data.model}  checked={data.checked} passed={data.passed} failed={data.failed}")

    typer.echo("\n--- Documents ---")
    typer.echo(metrics.document_table(data).to_string(index=False))

    typer.echo("\n--- Rule Failures ---")
    table = metrics.rule_failure_table(data)
    if table.empty:
        typer.echo("No rule outcomes in report.")
    else:
        typer.echo(table.to_string(index=False, float_format=lambda v: f"{v:.1f}"))


def main():
    app()


if __name__ == "__main__":
    main()
