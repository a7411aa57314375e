"""Result records produced by the classification pipeline."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

# Categories emitted by the bundled model, in model output order.
CATEGORIES = ("Hentai", "Neutral", "Pornography", "Sexy")

# Categories that flag an item as explicit.
NSFW_CATEGORIES = ("Hentai", "Pornography", "Sexy")

# Tie-break order for equal scores: earlier wins.
LABEL_PRIORITY = ("Pornography", "Hentai", "Sexy", "Neutral")

UnitKey = Union[int, str]


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one unit of image bytes."""
    scores: Mapping[str, float]
    predicted_label: str
    is_nsfw: bool

    def __post_init__(self):
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    @classmethod
    def from_scores(
        cls,
        scores: Mapping[str, float],
        categories: Sequence[str] = CATEGORIES,
        nsfw_categories: Iterable[str] = NSFW_CATEGORIES,
        label_priority: Sequence[str] = LABEL_PRIORITY,
    ) -> "ClassificationResult":
        """
        Build a result from raw category scores.

        The predicted label is the highest-scoring category; equal scores
        resolve to whichever label comes first in ``label_priority``.

        Args:
            scores: Mapping of category label to probability.
            categories: Exhaustive category set the scores must cover.
            nsfw_categories: Labels that count as explicit.
            label_priority: Tie-break order over ``categories``.

        Returns:
            Immutable ClassificationResult.

        Raises:
            ValueError: If labels are missing, unknown, or out of [0, 1].
        """
        missing = [c for c in categories if c not in scores]
        unknown = [label for label in scores if label not in categories]
        if missing or unknown:
            raise ValueError(
                f"Scores must cover exactly {list(categories)}; "
                f"missing={missing}, unknown={unknown}"
            )

        normalized = {}
        for label in categories:
            value = float(scores[label])
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Score for {label} must be between 0 and 1, got {value}")
            normalized[label] = value

        rank = {label: i for i, label in enumerate(label_priority)}
        predicted = min(
            categories,
            key=lambda label: (-normalized[label], rank.get(label, len(rank))),
        )
        return cls(
            scores=normalized,
            predicted_label=predicted,
            is_nsfw=predicted in set(nsfw_categories),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scores": dict(self.scores),
            "predicted_label": self.predicted_label,
            "is_nsfw": self.is_nsfw,
        }


@dataclass(frozen=True)
class UnitFailure:
    """A unit (frame or batch item) that produced no result."""
    key: UnitKey
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, key: UnitKey, error: BaseException) -> "UnitFailure":
        return cls(key=key, error_type=type(error).__name__, message=str(error))

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "error_type": self.error_type, "message": self.message}


@dataclass(frozen=True)
class FramesResult:
    """Outcome of classifying a multi-frame medium (gif or video)."""
    frames: Mapping[int, ClassificationResult] = field(default_factory=dict)
    failures: Mapping[int, UnitFailure] = field(default_factory=dict)

    def __post_init__(self):
        ordered = {index: self.frames[index] for index in sorted(self.frames)}
        object.__setattr__(self, "frames", MappingProxyType(ordered))
        failed = {index: self.failures[index] for index in sorted(self.failures)}
        object.__setattr__(self, "failures", MappingProxyType(failed))

    @property
    def frame_count(self) -> int:
        """Number of frames classified."""
        return len(self.frames)

    @property
    def is_nsfw(self) -> bool:
        """True if any classified frame is explicit."""
        return any(result.is_nsfw for result in self.frames.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frames": {index: result.to_dict() for index, result in self.frames.items()},
            "frame_count": self.frame_count,
            "is_nsfw": self.is_nsfw,
            "failures": [failure.to_dict() for failure in self.failures.values()],
        }


@dataclass(frozen=True)
class BatchItem:
    """An item identifier paired with its classification."""
    id: str
    result: ClassificationResult

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.result.to_dict()}


@dataclass
class BatchResult:
    """Unordered results of a batch run, plus the items that failed."""
    items: List[BatchItem] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)

    def __iter__(self) -> Iterator[BatchItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, item_id: str) -> Optional[BatchItem]:
        """Look up a completed item by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def failed_ids(self) -> List[str]:
        return [str(failure.key) for failure in self.failures]
