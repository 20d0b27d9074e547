"""Tests for the phrase grouper (caption_engine.core.grouping).

WHY: Grouping decides when every caption appears and disappears. The
non-overlap invariant after padding is the central contract of the whole
engine, so it is checked exhaustively at its boundaries and over seeded
random transcripts, on top of the per-rule tests.

HOW: Word lists are built with conftest.make_words() or by hand for exact
timing. Random transcripts use random.Random with fixed seeds so failures
reproduce.

RULES:
- g[i].end_ms + safety_margin_ms <= g[i+1].start_ms after padding, always
- Concatenated group words reproduce the input sequence
"""

import random

import pytest

from caption_engine.core.grouping import (
    add_display_padding,
    build_phrase_groups,
    group_words,
    merge_short_groups,
)
from caption_engine.core.ir import PhraseGroup, TimedWord, Transcript
from caption_engine.models import GroupingConfig, TimingPolicy

from conftest import make_words


def _group(group_id, start, end, text="word"):
    words = [TimedWord(word=text, start_ms=start, end_ms=end)]
    return PhraseGroup(id=group_id, lines=[text], words=words, start_ms=start, end_ms=end)


def _assert_non_overlapping(groups, policy):
    for current, following in zip(groups, groups[1:]):
        assert current.end_ms + policy.safety_margin_ms <= following.start_ms
    for g in groups:
        assert g.end_ms > g.start_ms
        assert g.start_ms >= 0


def _random_words(rng, count):
    words = []
    t = rng.uniform(0, 500)
    vocab = ["a", "we", "the", "quick", "brown", "caption", "timing", "really.",
             "ok!", "why?", "extraordinarily", "100%", "$4.99", "x"]
    for _ in range(count):
        duration = rng.choice([0, 1, 10, 50, 120, 300, 700])
        gap = rng.choice([0, 0, 1, 15, 29, 30, 31, 60, 150, 299, 300, 1200])
        words.append(TimedWord(word=rng.choice(vocab), start_ms=t, end_ms=t + duration))
        t += duration + gap
    return words


class TestGroupWords:
    """group_words() flush rules."""

    def test_empty_input(self):
        assert group_words([]) == []

    def test_scenario_evenly_spaced_ten_words(self):
        """Ten words over 0-5000 ms: groups of <= 8 words, <= 2 lines of <= 32 chars."""
        words = make_words("a b c d e f g h i j".split(), word_ms=400, gap_ms=100)
        groups = group_words(words)
        config = GroupingConfig()
        assert [w for g in groups for w in g.words] == words
        for g in groups:
            assert len(g.words) <= config.max_words_per_group
            assert len(g.lines) <= config.max_lines_per_group
            assert all(len(line) <= config.max_chars_per_line for line in g.lines)
        assert groups[0].start_ms == 0
        assert groups[-1].end_ms == pytest.approx(4900)

    def test_word_limit_flushes_before_word(self):
        words = make_words([str(i) for i in range(10)])
        groups = group_words(words, GroupingConfig(max_words_per_group=4))
        assert [len(g.words) for g in groups] == [4, 4, 2]

    def test_line_limit_flushes_before_word(self):
        words = make_words(["aaaaaaaa"] * 6)
        config = GroupingConfig(max_chars_per_line=17, max_lines_per_group=2)
        groups = group_words(words, config)
        # two words per 17-char line, so four words per group
        assert [len(g.words) for g in groups] == [4, 2]
        assert groups[0].lines == ["aaaaaaaa aaaaaaaa", "aaaaaaaa aaaaaaaa"]

    def test_pause_flushes_after_word(self):
        words = [
            TimedWord("one", 0, 200),
            TimedWord("two", 250, 400),
            TimedWord("three", 700, 900),
        ]
        groups = group_words(words)
        assert [g.text for g in groups] == ["one two", "three"]

    def test_pause_just_below_threshold_does_not_flush(self):
        words = [TimedWord("one", 0, 200), TimedWord("two", 499, 600)]
        assert len(group_words(words)) == 1

    def test_sentence_end_flushes(self):
        words = make_words(["Hello", "there.", "How", "are", "you?", "Fine"])
        groups = group_words(words)
        assert [g.text for g in groups] == ["Hello there.", "How are you?", "Fine"]

    def test_punctuation_break_can_be_disabled(self):
        words = make_words(["Hello", "there.", "How", "are", "you?"])
        groups = group_words(words, GroupingConfig(prefer_break_on_punctuation=False))
        assert len(groups) == 1

    def test_comma_does_not_flush(self):
        words = make_words(["Well,", "maybe", "not"])
        assert len(group_words(words)) == 1

    def test_overlong_word_gets_own_group_lines(self):
        words = make_words(["x" * 40, "tail"])
        groups = group_words(words, GroupingConfig(max_lines_per_group=1))
        assert [g.text for g in groups] == ["x" * 40, "tail"]

    def test_group_timing_from_words(self):
        words = make_words(["a", "b", "c"], start_ms=1000, word_ms=200, gap_ms=50)
        (group,) = group_words(words)
        assert group.start_ms == 1000
        assert group.end_ms == pytest.approx(1700)

    def test_ids_are_deterministic(self):
        words = make_words([str(i) for i in range(20)])
        ids = [g.id for g in group_words(words, GroupingConfig(max_words_per_group=5))]
        assert ids == ["pg_0001", "pg_0002", "pg_0003", "pg_0004"]
        assert ids == [g.id for g in group_words(words, GroupingConfig(max_words_per_group=5))]


class TestMergeShortGroups:
    """merge_short_groups() forward merging."""

    def test_short_group_merges_forward(self):
        groups = [_group("pg_0001", 0, 300, "hi"), _group("pg_0002", 400, 1500, "there")]
        merged = merge_short_groups(groups)
        assert len(merged) == 1
        assert merged[0].id == "pg_0001"
        assert merged[0].text == "hi there"
        assert merged[0].lines == ["hi there"]
        assert merged[0].start_ms == 0
        assert merged[0].end_ms == 1500

    def test_final_group_kept_even_if_short(self):
        groups = [_group("pg_0001", 0, 1000, "long"), _group("pg_0002", 1100, 1200, "end")]
        merged = merge_short_groups(groups)
        assert [g.id for g in merged] == ["pg_0001", "pg_0002"]

    def test_merges_chain(self):
        groups = [
            _group("pg_0001", 0, 100, "a"),
            _group("pg_0002", 150, 250, "b"),
            _group("pg_0003", 300, 400, "c"),
            _group("pg_0004", 450, 2000, "d"),
        ]
        merged = merge_short_groups(groups)
        assert len(merged) == 1
        assert merged[0].text == "a b c d"
        assert merged[0].id == "pg_0001"

    def test_merge_skipped_when_too_many_lines(self):
        config = GroupingConfig(max_chars_per_line=10, max_lines_per_group=1)
        groups = [_group("pg_0001", 0, 300, "abcdefgh"), _group("pg_0002", 400, 2000, "ijklmnop")]
        merged = merge_short_groups(groups, config)
        assert [g.id for g in merged] == ["pg_0001", "pg_0002"]
        assert all(len(g.lines) <= 1 for g in merged)

    def test_merge_ignores_word_budget(self):
        config = GroupingConfig(max_words_per_group=2)
        first = PhraseGroup(
            id="pg_0001", lines=["a b"], start_ms=0, end_ms=300,
            words=[TimedWord("a", 0, 100), TimedWord("b", 200, 300)],
        )
        second = PhraseGroup(
            id="pg_0002", lines=["c d"], start_ms=400, end_ms=2000,
            words=[TimedWord("c", 400, 1000), TimedWord("d", 1100, 2000)],
        )
        (merged,) = merge_short_groups([first, second], config)
        assert merged.text == "a b c d"
        assert len(merged.words) > config.max_words_per_group

    def test_single_group_untouched(self):
        groups = [_group("pg_0001", 0, 100)]
        assert merge_short_groups(groups) == groups

    def test_input_not_mutated(self):
        groups = [_group("pg_0001", 0, 300, "hi"), _group("pg_0002", 400, 1500, "there")]
        merge_short_groups(groups)
        assert groups[0].words[0].word == "hi"
        assert len(groups[0].words) == 1

    def test_coverage_preserved(self):
        words = make_words("one two three four five six seven eight nine ten".split(),
                           word_ms=100, gap_ms=350)
        groups = merge_short_groups(group_words(words))
        assert [w for g in groups for w in g.words] == words


class TestAddDisplayPadding:
    """add_display_padding() window arithmetic."""

    def test_first_group_lead_in_capped_at_zero(self):
        (g,) = add_display_padding([_group("pg_0001", 40, 1000)])
        assert g.start_ms == 0

    def test_first_group_full_lead_in(self):
        (g,) = add_display_padding([_group("pg_0001", 500, 1500)])
        assert g.start_ms == 400

    def test_last_group_gets_full_trail(self):
        (g,) = add_display_padding([_group("pg_0001", 500, 1500)])
        assert g.end_ms == 1600

    def test_lead_in_uses_third_of_gap(self):
        groups = [_group("pg_0001", 0, 1000), _group("pg_0002", 1150, 2500)]
        padded = add_display_padding(groups)
        # gap 150: trail of first is min(100, 150), inside 1150 - 30
        assert padded[0].end_ms == 1100
        # lead-in min(100, 50) = 50 but not before 1100 + 30
        assert padded[1].start_ms == 1130

    def test_large_gap_full_padding(self):
        groups = [_group("pg_0001", 0, 1000), _group("pg_0002", 3000, 4000)]
        padded = add_display_padding(groups)
        assert padded[0].end_ms == 1100
        assert padded[1].start_ms == 2900

    def test_short_window_extended(self):
        groups = [_group("pg_0001", 0, 200), _group("pg_0002", 5000, 6000)]
        padded = add_display_padding(groups)
        assert padded[0].end_ms == pytest.approx(800)

    def test_extension_bounded_by_next_group(self):
        groups = [_group("pg_0001", 0, 200), _group("pg_0002", 400, 1400)]
        padded = add_display_padding(groups)
        assert padded[0].end_ms == 370

    def test_touching_windows_are_separated(self):
        groups = [_group("pg_0001", 0, 1000), _group("pg_0002", 1000, 2000)]
        padded = add_display_padding(groups)
        assert padded[0].end_ms + 30 <= padded[1].start_ms

    def test_zero_length_group_gets_minimum_window(self):
        groups = [_group("pg_0001", 1000, 1000), _group("pg_0002", 1010, 1020)]
        padded = add_display_padding(groups, TimingPolicy(min_display_ms=0))
        for g in padded:
            assert g.end_ms >= g.start_ms + 50
        _assert_non_overlapping(padded, TimingPolicy())

    def test_words_and_ids_unchanged(self):
        groups = [_group("pg_0001", 0, 1000, "a"), _group("pg_0002", 1500, 2500, "b")]
        padded = add_display_padding(groups)
        assert [g.id for g in padded] == ["pg_0001", "pg_0002"]
        assert [g.words for g in padded] == [g.words for g in groups]
        assert groups[0].end_ms == 1000

    @pytest.mark.parametrize("gap", [0, 1, 10, 29, 30, 31, 59, 60, 61, 99, 100, 129, 130, 131, 300, 1000])
    @pytest.mark.parametrize("duration", [0, 1, 50, 799, 800, 801, 2000])
    def test_boundary_gaps(self, gap, duration):
        policy = TimingPolicy()
        groups = []
        t = 0.0
        for i in range(4):
            groups.append(_group("pg_{:04d}".format(i + 1), t, t + duration))
            t += duration + gap
        _assert_non_overlapping(add_display_padding(groups, policy), policy)

    @pytest.mark.parametrize("safety", [0, 30, 75])
    @pytest.mark.parametrize("pad", [0, 100, 400])
    def test_boundary_policies(self, safety, pad):
        policy = TimingPolicy(safety_margin_ms=safety, pad_ms=pad)
        groups = [_group("pg_{:04d}".format(i + 1), i * 100.0, i * 100.0 + 90) for i in range(10)]
        _assert_non_overlapping(add_display_padding(groups, policy), policy)

    @pytest.mark.parametrize("seed", range(40))
    def test_random_transcripts_never_overlap(self, seed):
        rng = random.Random(seed)
        words = _random_words(rng, rng.randint(1, 120))
        policy = TimingPolicy(
            min_display_ms=rng.choice([0, 400, 800, 1500]),
            pad_ms=rng.choice([0, 100, 250]),
            safety_margin_ms=rng.choice([0, 30, 100]),
        )
        config = GroupingConfig(
            max_chars_per_line=rng.choice([8, 16, 32]),
            max_lines_per_group=rng.choice([1, 2, 3]),
            max_words_per_group=rng.choice([1, 3, 8]),
        )
        groups = build_phrase_groups(words, config, policy)
        _assert_non_overlapping(groups, policy)
        assert [w for g in groups for w in g.words] == words
        assert all(len(g.lines) <= config.max_lines_per_group for g in groups)


class TestBuildPhraseGroups:
    """build_phrase_groups() end to end."""

    def test_accepts_transcript(self):
        words = make_words("a b c d e f g h i j".split())
        transcript = Transcript(words=words, duration_ms=words[-1].end_ms)
        assert build_phrase_groups(transcript) == build_phrase_groups(words)

    def test_scenario_covers_timeline(self):
        words = make_words("a b c d e f g h i j".split(), word_ms=400, gap_ms=100)
        groups = build_phrase_groups(words)
        policy = TimingPolicy()
        _assert_non_overlapping(groups, policy)
        assert groups[0].start_ms == 0
        assert groups[-1].end_ms == pytest.approx(4900 + policy.pad_ms)
        for current, following in zip(groups, groups[1:]):
            assert following.start_ms - current.end_ms <= 100 + policy.safety_margin_ms

    def test_empty(self):
        assert build_phrase_groups([]) == []
