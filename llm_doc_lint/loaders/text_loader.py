import glob
import os
from typing import Iterable, List, Optional

from ..engine.schemas import Document

DEFAULT_TARGET_PATTERN = "stage_descriptions/**/*.md"


def split_front_matter(text: str):
    """
    Split a leading YAML front-matter block ("---" ... "---") from Markdown.
    Returns (front_matter_text or None, body).
    """
    if not text.startswith("---"):
        return None, text
    lines = text.split("\n")
    if lines[0].strip() != "---":
        return None, text
    for i in range(1, len(lines)):
        if lines[i].strip() in ("---", "..."):
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1:])
    return None, text


def strip_front_matter(text: str) -> str:
    return split_front_matter(text)[1]


def read_document_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as fh:
        return strip_front_matter(fh.read())


def discover_targets(pattern: Optional[str] = None, root: Optional[str] = None) -> List[str]:
    """
    Expand a glob (recursive ** allowed) into sorted absolute file paths.
    Relative patterns resolve against `root` (default: cwd).
    """
    pat = pattern or DEFAULT_TARGET_PATTERN
    if root and not os.path.isabs(pat):
        pat = os.path.join(root, pat)
    files = [p for p in glob.glob(pat, recursive=True) if os.path.isfile(p)]
    return sorted(os.path.abspath(p) for p in files)


def load_documents(paths: Iterable[str]) -> List[Document]:
    """
    Materialize documents up front. Unreadable files are left unmaterialized
    (text=None) so the engine reports them as a per-document error instead
    of aborting the batch.
    """
    docs: List[Document] = []
    for p in paths:
        try:
            docs.append(Document(path=p, text=read_document_text(p)))
        except (OSError, UnicodeDecodeError):
            docs.append(Document(path=p))
    return docs
