import os
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from .schemas import Document, Rule

_HERE = os.path.dirname(os.path.abspath(__file__))
DEFAULT_PROMPTS_DIR = os.path.abspath(os.path.join(_HERE, "..", "prompts"))
RULE_TEMPLATE = "rule_eval.jinja"


class PromptBuilder:
    """
    Renders the per-rule prompt: the full rule Markdown plus the full target
    document, with a strict JSON answer contract.
    """

    def __init__(self, prompts_dir: Optional[str] = None, template_name: str = RULE_TEMPLATE):
        self.env = Environment(loader=FileSystemLoader(prompts_dir or DEFAULT_PROMPTS_DIR))
        self.template = self.env.get_template(template_name)

    def __call__(self, rule: Rule, document: Document) -> str:
        return self.template.render(
            rule=rule,
            path=document.path,
            content=document.text or "",
        ).strip()


_default_builder: Optional[PromptBuilder] = None


def render_rule_prompt(rule: Rule, document: Document) -> str:
    global _default_builder
    if _default_builder is None:
        _default_builder = PromptBuilder()
    return _default_builder(rule, document)
