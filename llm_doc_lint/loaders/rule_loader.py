import logging
import os
from typing import Any, Dict, List

import yaml

from ..engine.schemas import SEVERITIES, Rule
from .text_loader import split_front_matter

logger = logging.getLogger(__name__)

RULE_EXTS = (".md", ".markdown")


def parse_rule_text(text: str, file_path: str) -> Rule:
    """
    Build a Rule from one Markdown rule document:

      ---
      id: R1_HOOK_ONE_LINER      # optional, defaults to the file stem
      severity: warn             # optional, "error" unless "warn"
      summary: Hook is one sentence
      ---
      <criteria Markdown>
    """
    fm_text, body = split_front_matter(text)
    fm: Dict[str, Any] = {}
    if fm_text is not None:
        loaded = yaml.safe_load(fm_text)
        if isinstance(loaded, dict):
            fm = loaded

    stem = os.path.splitext(os.path.basename(file_path))[0]
    rule_id = fm.get("id")
    if not isinstance(rule_id, str) or not rule_id.strip():
        rule_id = stem
    severity = fm.get("severity")
    if severity not in SEVERITIES:
        severity = "error"
    summary = fm.get("summary")

    return Rule(
        id=rule_id.strip(),
        criteria=body.strip(),
        severity=severity,
        summary=summary if isinstance(summary, str) else None,
        path=os.path.abspath(file_path),
    )


def load_all_rules(rules_dir: str) -> List[Rule]:
    """
    Load every .md/.markdown file directly under rules_dir (not recursive).
    Rules are sorted by id so reports are stable between runs.
    """
    if not rules_dir or not os.path.isdir(rules_dir):
        raise FileNotFoundError(f"Rules directory not found: {rules_dir}")

    rules: List[Rule] = []
    for name in os.listdir(rules_dir):
        p = os.path.join(rules_dir, name)
        if not os.path.isfile(p) or os.path.splitext(name)[1].lower() not in RULE_EXTS:
            continue
        with open(p, "r", encoding="utf-8") as fh:
            raw = fh.read()
        try:
            rules.append(parse_rule_text(raw, p))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid front-matter in rule file {p}: {e}")

    rules.sort(key=lambda r: r.id)
    logger.info(f"Loaded {len(rules)} rules from {rules_dir}")
    return rules
