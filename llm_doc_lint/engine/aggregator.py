from typing import Optional, Sequence

from .schemas import DocumentResult, Summary


def aggregate(document_results: Sequence[DocumentResult], model: Optional[str] = None) -> Summary:
    """
    Fold per-document results into a Summary. Documents are counted by their
    precomputed `overall_pass`; individual outcomes are not re-inspected.
    """
    results = list(document_results)
    passed = 0
    for r in results:
        if r.overall_pass:
            passed += 1
    return Summary(
        checked=len(results),
        passed=passed,
        failed=len(results) - passed,
        document_results=results,
        model=model,
    )
