"""Phrase grouper: timed words to non-overlapping on-screen caption blocks.

WHY: Speech arrives as a flat word stream, but viewers read captions in
blocks. Blocks must respect line/word budgets, break at natural pauses and
sentence ends, stay on screen long enough to read, and never overlap each
other, in preview and export alike.

HOW: Three passes, each a pure function over a list of PhraseGroup:
  1. group_words()         - greedy scan with flush-before / flush-after rules
  2. merge_short_groups()  - too-short groups merge forward into the next one
  3. add_display_padding() - lead-in / trail-out padding bounded by neighbors
build_phrase_groups() runs all three.

RULES:
- Group ids are deterministic (pg_0001, pg_0002, ... in emission order)
- A merged group keeps the id and start of its first constituent
- A merge that would exceed max_lines_per_group is skipped
- Merged groups may exceed max_words_per_group
- The final group is never merged away, even when short
- After padding: g[i].end_ms + safety_margin_ms <= g[i+1].start_ms, always
- Input groups are never mutated; each pass returns new PhraseGroup objects
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Sequence

from caption_engine.core.ir import PhraseGroup, TimedWord, Transcript
from caption_engine.layout.composer import break_into_lines, count_lines_needed
from caption_engine.models import GroupingConfig, TimingPolicy
from caption_engine.presets import SENTENCE_END_CHARS

logger = logging.getLogger(__name__)


def _group_id(index: int) -> str:
    return "pg_{:04d}".format(index)


def _ends_sentence(word: str) -> bool:
    return word.endswith(tuple(SENTENCE_END_CHARS))


def _make_group(group_id: str, words: list[TimedWord], max_chars: int) -> PhraseGroup:
    return PhraseGroup(
        id=group_id,
        lines=break_into_lines([w.word for w in words], max_chars),
        words=list(words),
        start_ms=words[0].start_ms,
        end_ms=words[-1].end_ms,
    )


# ---------------------------------------------------------------------------
# Pass 1: grouping
# ---------------------------------------------------------------------------


def group_words(words: Sequence[TimedWord], config: GroupingConfig | None = None) -> list[PhraseGroup]:
    """Segment ``words`` into phrase groups.

    WHY: Each group must fit the on-screen line budget and should end where
    the speaker naturally pauses.

    HOW: Before admitting a word, the buffer is flushed if buffer + word
    would need more than max_lines_per_group lines at max_chars_per_line,
    or more than max_words_per_group words. After admitting it, the buffer
    is flushed when the silence to the next word reaches
    min_pause_for_break_ms, or the word ends a sentence (when enabled).

    Returns:
        Groups in order; start/end are the first word start / last word end.
    """
    config = config or GroupingConfig()
    groups: list[PhraseGroup] = []
    buffer: list[TimedWord] = []

    def flush() -> None:
        if buffer:
            groups.append(_make_group(_group_id(len(groups) + 1), buffer, config.max_chars_per_line))
            buffer.clear()

    for i, word in enumerate(words):
        trial = [w.word for w in buffer] + [word.word]
        if buffer and (
            count_lines_needed(trial, config.max_chars_per_line) > config.max_lines_per_group
            or len(trial) > config.max_words_per_group
        ):
            flush()
        buffer.append(word)

        if i + 1 < len(words):
            pause = words[i + 1].start_ms - word.end_ms
            if pause >= config.min_pause_for_break_ms:
                flush()
            elif config.prefer_break_on_punctuation and _ends_sentence(word.word):
                flush()

    flush()
    return groups


# ---------------------------------------------------------------------------
# Pass 2: merging
# ---------------------------------------------------------------------------


def merge_short_groups(
    groups: Sequence[PhraseGroup],
    config: GroupingConfig | None = None,
    policy: TimingPolicy | None = None,
) -> list[PhraseGroup]:
    """Merge groups shorter than min_display_ms forward into their successor.

    A merged group that is still short may merge again. A merge whose
    recomposed lines exceed max_lines_per_group is not done; the short group
    is kept as-is and left to the padding pass.

    Only the line budget is checked here: a merged group may hold more than
    max_words_per_group words, since a short flash is worse to read than a
    long block.
    """
    config = config or GroupingConfig()
    policy = policy or TimingPolicy()
    merged: list[PhraseGroup] = []
    pending: PhraseGroup | None = None

    for index, group in enumerate(groups):
        if pending is not None:
            words = pending.words + group.words
            lines = break_into_lines([w.word for w in words], config.max_chars_per_line)
            if len(lines) <= config.max_lines_per_group:
                group = PhraseGroup(
                    id=pending.id,
                    lines=lines,
                    words=words,
                    start_ms=pending.start_ms,
                    end_ms=group.end_ms,
                )
            else:
                logger.debug("Not merging %s into %s: would need %d lines", pending.id, group.id, len(lines))
                merged.append(pending)
            pending = None

        is_last = index == len(groups) - 1
        if group.duration_ms < policy.min_display_ms and not is_last:
            pending = group
        else:
            merged.append(group)

    return merged


# ---------------------------------------------------------------------------
# Pass 3: padding
# ---------------------------------------------------------------------------


def add_display_padding(
    groups: Sequence[PhraseGroup],
    policy: TimingPolicy | None = None,
) -> list[PhraseGroup]:
    """Widen each group's window toward the surrounding silence.

    WHY: Captions that appear exactly on the first syllable and vanish on
    the last feel abrupt; a little lead-in and trail-out reads better. The
    padding must never make two captions overlap.

    HOW: Groups are processed in order, each seeing the previous group's
    final window and the next group's original start:
      - lead-in = min(pad_ms, gap_before * lead_in_gap_ratio); the first
        group takes min(pad_ms, start) so it never goes negative
      - start is never earlier than previous final end + safety margin
      - trail-out = min(pad_ms, gap_after); the last group gets pad_ms
      - end is never later than next original start - safety margin
      - a window shorter than min_display_ms is extended within that bound
      - last resort: end >= start + min_window_ms; the next group's start
        is then pushed later by the clamp above

    RULES:
    - g[i].end_ms + safety_margin_ms <= g[i+1].start_ms for every output pair
    - Words, lines and ids are unchanged; only start_ms / end_ms move
    """
    policy = policy or TimingPolicy()
    safety = policy.safety_margin_ms
    padded: list[PhraseGroup] = []

    for i, group in enumerate(groups):
        prev_group = groups[i - 1] if i > 0 else None
        next_group = groups[i + 1] if i + 1 < len(groups) else None
        orig_start, orig_end = group.start_ms, group.end_ms

        if prev_group is None:
            start = orig_start - min(policy.pad_ms, max(0.0, orig_start))
        else:
            gap_before = max(0.0, orig_start - prev_group.end_ms)
            start = orig_start - min(policy.pad_ms, gap_before * policy.lead_in_gap_ratio)
            start = max(start, padded[-1].end_ms + safety)

        if next_group is None:
            limit = math.inf
            end = orig_end + policy.pad_ms
        else:
            limit = next_group.start_ms - safety
            gap_after = max(0.0, next_group.start_ms - orig_end)
            end = orig_end + min(policy.pad_ms, gap_after)
        end = min(max(end, orig_end), limit)

        if end - start < policy.min_display_ms:
            end = max(end, min(start + policy.min_display_ms, limit))

        if end < start + policy.min_window_ms:
            end = start + policy.min_window_ms

        padded.append(dataclasses.replace(group, start_ms=start, end_ms=end))

    return padded


def build_phrase_groups(
    source: Transcript | Sequence[TimedWord],
    config: GroupingConfig | None = None,
    policy: TimingPolicy | None = None,
) -> list[PhraseGroup]:
    """Run group -> merge -> pad over a Transcript or a word sequence."""
    words = source.words if isinstance(source, Transcript) else list(source)
    config = config or GroupingConfig()
    policy = policy or TimingPolicy()

    groups = group_words(words, config)
    groups = merge_short_groups(groups, config, policy)
    groups = add_display_padding(groups, policy)
    logger.debug("Built %d phrase groups from %d words", len(groups), len(words))
    return groups
