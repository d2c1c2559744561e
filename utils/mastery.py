from typing import Dict, Iterable

CONFIDENCE_LEVELS = ("new", "learning", "shaky", "good", "solid")

MEMORIZED_LEVELS = {"good", "solid"}
LEARNING_LEVELS = {"learning", "shaky"}


def mastery_bucket(confidence: str) -> str:
    if confidence in MEMORIZED_LEVELS:
        return "memorized"
    if confidence in LEARNING_LEVELS:
        return "learning"
    return "new"


def confidence_counts(confidences: Iterable[str]) -> Dict[str, int]:
    counts = {level: 0 for level in CONFIDENCE_LEVELS}
    total = 0
    for confidence in confidences:
        counts[confidence] = counts.get(confidence, 0) + 1
        total += 1
    counts["total"] = total
    return counts


def mastery_percent(mastered: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round((mastered / total) * 100, 1)
