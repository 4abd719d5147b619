import json
import logging
import os

from ..engine.schemas import Summary

logger = logging.getLogger("lint")


def write_json_report(summary: Summary, path: str, include_source: bool = True) -> str:
    data = summary.to_dict()
    if not include_source:
        for f in data["files"]:
            f.pop("source", None)
    d = os.path.dirname(os.path.abspath(path))
    os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, ensure_ascii=False)
    logger.info(f"[JSON_REPORT] Wrote JSON summary to {path}")
    return path


def read_json_report(path: str) -> Summary:
    with open(path, "r", encoding="utf-8") as fh:
        return Summary.from_dict(json.load(fh))
