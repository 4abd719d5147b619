import asyncio
import json

import pytest

from llm_doc_lint.engine.schemas import Document, Rule


def verdict(passed=True, rationale="ok", fixes=None):
    return json.dumps({"pass": passed, "rationale": rationale, "suggested_fixes": fixes or []})


class ScriptedTransport:
    """
    Async transport that replays a list of responses. A str is returned as
    the model output; an exception instance is raised.
    """

    def __init__(self, script):
        self.script = list(script)
        self.prompts = []

    async def __call__(self, prompt):
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def simple_prompt(rule, document):
    return f"{rule.id}|{document.path}"


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def rule():
    return Rule(id="R1_HOOK", criteria="The first line is a one-sentence hook.")


@pytest.fixture
def document():
    return Document(path="docs/a.md", text="# Title\nA hook sentence.\nBody text.\n")
