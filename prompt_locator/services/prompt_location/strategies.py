"""Search strategy generation.

Turns one literal prompt into an ordered list of scored queries. The first
strategy is always the full literal text at confidence 1.0; every later
strategy is a fragment meant to survive partial edits of the prompt in the
repository (a changed first line, an extra paragraph, reflowed whitespace).
"""

import re
from collections import deque

from prompt_locator.core.constants import (
    FIRST_QUARTER_CONFIDENCE,
    FIRST_SENTENCE_CONFIDENCE,
    FULL_TEXT_CONFIDENCE,
    HALF_CONFIDENCE,
    LONG_PROMPT_LENGTH,
    MAX_STRATEGIES_DEFAULT,
    MIDDLE_SECTION_CONFIDENCE,
    MIN_SEGMENT_WORDS,
    MIN_SENTENCE_LENGTH,
    MIN_SPLIT_TEXT_LENGTH,
    PREFIX_CONFIDENCE,
    PREFIX_LENGTH_DEFAULT,
    SEGMENT_BASE_CONFIDENCE,
    SEGMENT_CONFIDENCE_FLOOR,
    SEGMENT_DEPTH_PENALTY,
    SEGMENT_MAX_DEPTH,
    WORD_WINDOW_BASE_CONFIDENCE,
    WORD_WINDOW_CONFIDENCE_STEP,
    WORD_WINDOW_MAX_COUNT,
    WORD_WINDOW_SIZE,
)
from prompt_locator.services.models import SearchStrategy

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def clamp_confidence(value: float) -> float:
    """Bound a confidence to [0, 1]."""
    return max(0.0, min(1.0, value))


def segment_confidence(depth: int) -> float:
    """Confidence of a divide-and-conquer segment at ``depth``."""
    return max(
        SEGMENT_BASE_CONFIDENCE - depth * SEGMENT_DEPTH_PENALTY,
        SEGMENT_CONFIDENCE_FLOOR,
    )


class StrategyGenerator:
    """Deterministic generator of scored search strategies."""

    def __init__(
        self,
        max_strategies: int = MAX_STRATEGIES_DEFAULT,
        prefix_length: int = PREFIX_LENGTH_DEFAULT,
    ) -> None:
        self.max_strategies = max_strategies
        self.prefix_length = prefix_length

    def generate(self, target_text: str) -> list[SearchStrategy]:
        """Build the ordered strategy list for ``target_text``.

        Args:
            target_text: The literal prompt as seen in production logs

        Returns:
            Strategies in priority order, capped at ``max_strategies``;
            empty only for empty input
        """
        if not target_text:
            return []

        strategies: list[SearchStrategy] = []
        seen_queries: set[str] = set()

        def add(name: str, query: str, confidence: float) -> None:
            if len(strategies) >= self.max_strategies:
                return
            if not query.strip() or query in seen_queries:
                return
            seen_queries.add(query)
            strategies.append(
                SearchStrategy(
                    name=name, query=query, confidence=clamp_confidence(confidence),
                ),
            )

        seen_queries.add(target_text)
        strategies.append(
            SearchStrategy(
                name="full_prompt", query=target_text, confidence=FULL_TEXT_CONFIDENCE,
            ),
        )

        text = target_text.strip()
        if not text:
            return strategies
        length = len(text)

        if length > self.prefix_length:
            add("prefix", text[: self.prefix_length].strip(), PREFIX_CONFIDENCE)

        first_sentence = self._first_sentence(text)
        if first_sentence:
            add("first_sentence", first_sentence, FIRST_SENTENCE_CONFIDENCE)

        if length > MIN_SPLIT_TEXT_LENGTH:
            half = length // 2
            add("first_half", text[:half].strip(), HALF_CONFIDENCE)
            add("last_half", text[half:].strip(), HALF_CONFIDENCE)

        if length > LONG_PROMPT_LENGTH:
            add("first_quarter", text[: length // 4].strip(), FIRST_QUARTER_CONFIDENCE)

        if length > MIN_SPLIT_TEXT_LENGTH:
            quarter = length // 4
            add(
                "middle_section",
                text[quarter : length - quarter].strip(),
                MIDDLE_SECTION_CONFIDENCE,
            )

        words = text.split()
        for name, query, confidence in self._divide_segments(words):
            add(name, query, confidence)

        for name, query, confidence in self._word_windows(words):
            add(name, query, confidence)

        return strategies

    @staticmethod
    def _first_sentence(text: str) -> str | None:
        for piece in _SENTENCE_SPLIT_RE.split(text):
            sentence = piece.strip()
            if sentence:
                if len(sentence) > MIN_SENTENCE_LENGTH and sentence != text:
                    return sentence
                return None
        return None

    @staticmethod
    def _divide_segments(words: list[str]) -> list[tuple[str, str, float]]:
        """Split words into thirds, breadth-first, down to ``SEGMENT_MAX_DEPTH``.

        A segment is divided only while each resulting third still holds at
        least twice the minimum segment word count.
        """
        min_third = 2 * MIN_SEGMENT_WORDS
        results: list[tuple[str, str, float]] = []
        queue: deque[tuple[list[str], int, str]] = deque([(words, 0, "")])

        while queue:
            segment, depth, label = queue.popleft()
            third = len(segment) // 3
            if depth > SEGMENT_MAX_DEPTH or third < min_third:
                continue

            parts = (segment[:third], segment[third : 2 * third], segment[2 * third :])
            confidence = segment_confidence(depth)
            for index, part in enumerate(parts, start=1):
                part_label = f"{label}{index}"
                results.append(
                    (f"segment_d{depth}_{part_label}", " ".join(part), confidence),
                )
                queue.append((part, depth + 1, f"{part_label}."))

        return results

    @staticmethod
    def _word_windows(words: list[str]) -> list[tuple[str, str, float]]:
        """Overlapping fixed-size windows (50% overlap) over the words."""
        if len(words) <= WORD_WINDOW_SIZE:
            return []

        step = WORD_WINDOW_SIZE // 2
        results: list[tuple[str, str, float]] = []
        for index, start in enumerate(range(0, len(words) - step, step)):
            if index >= WORD_WINDOW_MAX_COUNT:
                break
            window = words[start : start + WORD_WINDOW_SIZE]
            confidence = max(
                WORD_WINDOW_BASE_CONFIDENCE - index * WORD_WINDOW_CONFIDENCE_STEP,
                SEGMENT_CONFIDENCE_FLOOR,
            )
            results.append((f"word_window_{index + 1}", " ".join(window), confidence))
        return results
