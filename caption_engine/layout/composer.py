"""Line composer: exhaustive line-break search plus character-width wrapping.

WHY: A caption that breaks "We raised prices by / 100%" reads very
differently from "We raised / prices by 100%". Naive left-to-right wrapping
produces dangling single words and lopsided lines, so the composer looks at
every way to break a short phrase and keeps the best-scoring one.

HOW: Two stages, kept apart so each can be tested on its own:
  1. generate_candidate_splits() - every contiguous partition of the words
     into 1..max_lines non-empty lines, built from itertools.combinations
     over the split points (lexicographic order, no recursion)
  2. score_split() - additive penalty from the preset's 'weights' dict
compose_lines() picks the minimum; the first candidate wins ties.
break_into_lines() / count_lines_needed() are the greedy character-width
wrap the phrase grouper uses for its line budget.

RULES:
- 0 words returns [""]; 1-2 words return the text as a single line
- The search is exhaustive; phrase word counts stay in the low tens
- Options come from presets.resolve_layout_preset(), never module globals
- Text content is never modified, only whitespace between words
"""

from __future__ import annotations

import itertools
import re
from typing import Any, Iterator, Sequence

from caption_engine.presets import resolve_layout_preset

_NUMERIC_TOKEN_RE = re.compile(r"^\d+%?$|^\$[\d,.]+$")


def is_numeric_token(word: str) -> bool:
    """True for bare numbers, percentages and dollar amounts ("100%", "$4.99")."""
    return bool(_NUMERIC_TOKEN_RE.match(word))


# ---------------------------------------------------------------------------
# Candidate generation and scoring
# ---------------------------------------------------------------------------


def generate_candidate_splits(words: Sequence[str], max_lines: int) -> Iterator[list[list[str]]]:
    """Yield every contiguous split of ``words`` into 1..max_lines lines.

    Candidates come out ordered by line count, then by split positions.
    """
    n = len(words)
    if n == 0:
        return
    for line_count in range(1, min(max_lines, n) + 1):
        for cuts in itertools.combinations(range(1, n), line_count - 1):
            bounds = (0, *cuts, n)
            yield [list(words[bounds[i]:bounds[i + 1]]) for i in range(line_count)]


def score_split(lines: Sequence[Sequence[str]], options: dict[str, Any]) -> float:
    """Penalty for one candidate; lower is better.

    ``lines`` holds the words of each line. ``options`` is a layout preset
    dict (target_words_per_line, allow_single_word_numbers, weights).
    """
    w = options["weights"]
    min_words, max_words = options["target_words_per_line"]
    lengths = [len(" ".join(line)) for line in lines]
    score = 0.0

    # Dangling single word at the end
    last = lines[-1]
    if len(lines) > 1 and len(last) == 1:
        if not (options["allow_single_word_numbers"] and is_numeric_token(last[0])):
            score += w["single_word_last_line"]

    for line in lines:
        count = len(line)
        if count > max_words + 1:
            score += (count - max_words) * w["words_over_max"]
        if count < min_words and len(lines) > 1:
            score += (min_words - count) * w["words_under_min"]

    # Visual balance
    score += (max(lengths) - min(lengths)) * w["imbalance_per_char"]

    if len(lines) >= 2 and lengths[-1] > lengths[0] * w["last_line_long_ratio"]:
        score += w["last_line_long"]

    if len(lines) == 3:
        outer_avg = (lengths[0] + lengths[2]) / 2
        if lengths[1] < outer_avg * w["middle_line_short_ratio"]:
            score += w["middle_line_short"]

    score += len(lines) * w["per_line"]
    return score


def compose_lines(
    text: str,
    layout_mode: str = "title",
    max_lines: int | None = None,
    target_words_per_line: tuple[int, int] | None = None,
    allow_single_word_numbers: bool | None = None,
) -> list[str]:
    """Choose line breaks for ``text`` by exhaustive search.

    WHY: Captions are short, so trying every split is affordable and gives
    the same answer every time, on every rendering surface.

    HOW: Resolves the layout preset, applies any explicit overrides, scores
    every candidate from generate_candidate_splits() and keeps the lowest.

    RULES:
    - Unknown layout_mode raises ValueError
    - Never returns more than max_lines lines
    - Ties keep the earliest candidate (fewest lines, earliest breaks)

    Returns:
        List of line strings (words joined by single spaces).
    """
    options = resolve_layout_preset(layout_mode)
    if max_lines is not None:
        options["max_lines"] = max_lines
    if target_words_per_line is not None:
        options["target_words_per_line"] = target_words_per_line
    if allow_single_word_numbers is not None:
        options["allow_single_word_numbers"] = allow_single_word_numbers

    words = text.split()
    if not words:
        return [""]
    if len(words) <= 2:
        return [" ".join(words)]

    best: list[list[str]] | None = None
    best_score = float("inf")
    for candidate in generate_candidate_splits(words, options["max_lines"]):
        score = score_split(candidate, options)
        if score < best_score:
            best, best_score = candidate, score

    return [" ".join(line) for line in best] if best else [" ".join(words)]


# ---------------------------------------------------------------------------
# Character-width wrapping
# ---------------------------------------------------------------------------


def break_into_lines(words: Sequence[str], max_chars: int) -> list[str]:
    """Greedy wrap at ``max_chars``; an over-long word gets a line of its own."""
    lines: list[str] = []
    current = ""
    for word in words:
        candidate = "{} {}".format(current, word) if current else word
        if current and len(candidate) > max_chars:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def count_lines_needed(words: Sequence[str], max_chars: int) -> int:
    return len(break_into_lines(words, max_chars))
