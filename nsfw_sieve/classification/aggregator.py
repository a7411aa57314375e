"""Merge unordered executor output into final result structures."""
from dataclasses import replace
from typing import Optional, Sequence

from ..core.models import BatchItem, BatchResult, FramesResult
from .executor import ExecutionOutcome


def aggregate_frames(outcome: ExecutionOutcome) -> FramesResult:
    """
    Build a FramesResult ordered by ascending frame index.

    Args:
        outcome: Executor output keyed by frame index.

    Returns:
        FramesResult holding every successful frame and every failure.

    Raises:
        ValueError: If a frame index is negative or appears twice.
    """
    frames = {}
    for index, result in outcome.results:
        if index < 0:
            raise ValueError(f"Frame index must be >= 0, got {index}")
        if index in frames:
            raise ValueError(f"Duplicate result for frame {index}")
        frames[index] = result

    failures = {failure.key: failure for failure in outcome.failures}
    return FramesResult(frames=frames, failures=failures)


def aggregate_batch(
    outcome: ExecutionOutcome,
    ids: Optional[Sequence[str]] = None
) -> BatchResult:
    """
    Build a BatchResult, keeping completion order.

    Args:
        outcome: Executor output.
        ids: Item identifiers indexed by unit key. If None, keys are the ids.
    """
    def item_id(key) -> str:
        return ids[key] if ids is not None else str(key)

    items = [BatchItem(id=item_id(key), result=result) for key, result in outcome.results]
    failures = [replace(failure, key=item_id(failure.key)) for failure in outcome.failures]
    return BatchResult(items=items, failures=failures)
