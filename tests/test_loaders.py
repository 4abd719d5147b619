import os

import pytest

from llm_doc_lint.api import PACKAGED_CONFIG_PATH, build_engine_cfg, default_config_path, load_config
from llm_doc_lint.engine.prompts import PromptBuilder, render_rule_prompt
from llm_doc_lint.engine.schemas import Document, Rule
from llm_doc_lint.loaders.rule_loader import load_all_rules, parse_rule_text
from llm_doc_lint.loaders.text_loader import (
    discover_targets,
    load_documents,
    split_front_matter,
    strip_front_matter,
)


@pytest.fixture
def rules_dir(tmp_path):
    d = tmp_path / "rules"
    d.mkdir()
    (d / "b_rule.md").write_text(
        "---\nid: R2_TONE\nseverity: warn\nsummary: Neutral tone\n---\nUse a neutral tone.\n",
        encoding="utf-8",
    )
    (d / "R1_HOOK.md").write_text("The first line is a hook.\n", encoding="utf-8")
    (d / "notes.txt").write_text("not a rule", encoding="utf-8")
    return d


@pytest.fixture
def dummy_config_file(tmp_path):
    config_content = """
model: gemini-2.5-flash
llm_api:
  timeout_seconds: 30
concurrency:
  file_concurrency: 4
  rule_concurrency: 2
retries:
  attempts: 5
  base_delay_ms: 100
  jitter_ms: 0
"""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_content)
    return config_path


# --- rules ------------------------------------------------------------------

def test_load_all_rules_sorted_by_id(rules_dir):
    rules = load_all_rules(str(rules_dir))

    assert [r.id for r in rules] == ["R1_HOOK", "R2_TONE"]
    hook, tone = rules
    assert hook.severity == "error"
    assert hook.criteria == "The first line is a hook."
    assert tone.severity == "warn"
    assert tone.summary == "Neutral tone"
    assert tone.criteria == "Use a neutral tone."
    assert os.path.isabs(tone.path)


def test_unknown_severity_defaults_to_error():
    rule = parse_rule_text("---\nseverity: fatal\n---\nbody", "/rules/R9.md")
    assert rule.id == "R9"
    assert rule.severity == "error"


def test_missing_rules_dir_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_all_rules(str(tmp_path / "nope"))


def test_invalid_front_matter_raises_value_error(tmp_path):
    d = tmp_path / "rules"
    d.mkdir()
    (d / "bad.md").write_text("---\nid: [unclosed\n---\nbody\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_all_rules(str(d))


# --- documents ----------------------------------------------------------------

def test_split_front_matter():
    fm, body = split_front_matter("---\na: 1\n---\n# Title\n")
    assert fm == "a: 1"
    assert body == "# Title\n"


def test_text_without_front_matter_is_unchanged():
    assert strip_front_matter("# Title\n---\n") == "# Title\n---\n"
    assert split_front_matter("---\nnever closed")[0] is None


def test_discover_targets_recursive_and_sorted(tmp_path):
    nested = tmp_path / "stage_descriptions" / "b"
    nested.mkdir(parents=True)
    (tmp_path / "stage_descriptions" / "z.md").write_text("z")
    (nested / "a.md").write_text("a")
    (nested / "skip.txt").write_text("x")

    found = discover_targets(root=str(tmp_path))

    assert found == sorted(found)
    assert [os.path.basename(p) for p in found] == ["a.md", "z.md"]
    assert all(os.path.isabs(p) for p in found)


def test_load_documents_leaves_unreadable_unmaterialized(tmp_path):
    ok = tmp_path / "ok.md"
    ok.write_text("---\nx: 1\n---\nbody\n", encoding="utf-8")
    docs = load_documents([str(ok), str(tmp_path / "gone.md")])

    assert docs[0].text == "body\n"
    assert docs[1].text is None


# --- config -----------------------------------------------------------------

def test_load_config_and_build_engine_cfg(dummy_config_file):
    cfg = build_engine_cfg(load_config(str(dummy_config_file)))

    assert cfg.model == "gemini-2.5-flash"
    assert cfg.timeout_seconds == 30
    assert cfg.file_concurrency == 4
    assert cfg.rule_concurrency == 2
    assert cfg.attempts == 5
    assert cfg.base_delay_ms == 100
    assert cfg.jitter_ms == 0


def test_overrides_win_and_none_is_ignored(dummy_config_file):
    cfg = build_engine_cfg(load_config(str(dummy_config_file)), file_concurrency=9, model=None)
    assert cfg.file_concurrency == 9
    assert cfg.model == "gemini-2.5-flash"


def test_build_engine_cfg_defaults_and_clamping():
    cfg = build_engine_cfg({}, rule_concurrency=0)
    assert cfg.file_concurrency == 100
    assert cfg.rule_concurrency == 1
    assert cfg.attempts == 3
    assert cfg.model is None


def test_unknown_override_rejected():
    with pytest.raises(ValueError):
        build_engine_cfg({}, bogus=1)


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_shipped_config_loads():
    cfg = build_engine_cfg(load_config())
    assert cfg.file_concurrency == 100
    assert cfg.rule_concurrency == 50


# --- prompts ----------------------------------------------------------------

def test_default_prompt_embeds_rule_and_document():
    rule = Rule(id="R1_HOOK", criteria="The first line is a hook.")
    doc = Document(path="docs/a.md", text="Hello world.")

    prompt = render_rule_prompt(rule, doc)

    assert '"id":"R1_HOOK"' in prompt
    assert "The first line is a hook." in prompt
    assert "docs/a.md" in prompt
    assert "Hello world." in prompt


def test_prompt_builder_with_custom_template(tmp_path):
    (tmp_path / "mini.jinja").write_text("{{ rule.id }} :: {{ path }} :: {{ content }}\n")
    builder = PromptBuilder(prompts_dir=str(tmp_path), template_name="mini.jinja")

    assert builder(Rule(id="R", criteria="c"), Document(path="p.md", text="t")) == "R :: p.md :: t"


def test_empty_yaml_values_fall_back_to_defaults():
    cfg = build_engine_cfg({
        "concurrency": {"file_concurrency": None, "rule_concurrency": None},
        "retries": {"attempts": None, "base_delay_ms": None, "jitter_ms": None},
        "llm_api": {"timeout_seconds": None},
    })
    assert (cfg.file_concurrency, cfg.rule_concurrency, cfg.attempts) == (100, 50, 3)
    assert cfg.base_delay_ms == 300
    assert cfg.jitter_ms == 200
    assert cfg.timeout_seconds == 120


def test_zero_jitter_is_kept():
    cfg = build_engine_cfg({"retries": {"jitter_ms": 0}})
    assert cfg.jitter_ms == 0


def test_default_config_prefers_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert default_config_path() == PACKAGED_CONFIG_PATH
    assert os.path.isfile(PACKAGED_CONFIG_PATH)

    (tmp_path / "config.yaml").write_text("model: gemini-2.5-pro\n")
    assert os.path.realpath(default_config_path()) == os.path.realpath(str(tmp_path / "config.yaml"))
    assert load_config()["model"] == "gemini-2.5-pro"
