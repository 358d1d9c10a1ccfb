"""Style fingerprint analysis."""

from __future__ import annotations

from slack_assistant.models.entities import StyleFingerprint
from slack_assistant.style.analyzer import (
    compute_fingerprint,
    extract_common_phrases,
    extract_greetings,
    extract_sign_offs,
    formality,
    length_bucket,
    round_half_up,
    select_representative_samples,
)


def test_empty_input_is_neutral_default() -> None:
    assert compute_fingerprint([]) == StyleFingerprint()
    assert compute_fingerprint([]).to_dict() == {
        "avg_message_length": 100,
        "emoji_frequency": 0.0,
        "uses_exclamation": False,
        "uses_ellipsis": False,
        "capitalization_style": "normal",
        "greeting_patterns": [],
        "sign_off_patterns": [],
        "common_phrases": [],
        "formality_level": "neutral",
        "typical_response_length": "medium",
    }


def test_phrase_floor_requires_three_occurrences() -> None:
    twice = ["ship it today", "ship it tomorrow", "unrelated words here"]
    assert "ship it" not in extract_common_phrases(twice)

    thrice = twice + ["ship it now"]
    assert "ship it" in extract_common_phrases(thrice)


def test_phrases_skip_all_stop_words_and_single_letters() -> None:
    messages = ["in the end we agreed", "in the end it works", "in the end x y z"]
    phrases = extract_common_phrases(messages)
    assert "in the" not in phrases
    assert "the end" in phrases
    assert "in the end" in phrases
    assert not any(phrase.startswith("x ") for phrase in phrases)


def test_capitalization_lowercase_at_eighty_percent() -> None:
    messages = ["yes", "sure", "ok", "will do", "Done"]
    assert compute_fingerprint(messages).capitalization_style == "lowercase"


def test_capitalization_uppercase_and_normal() -> None:
    assert compute_fingerprint(["Yes", "Sure", "Ok", "Will do", "Done"]).capitalization_style == "uppercase"
    assert compute_fingerprint(["yes", "Sure", "ok", "Will do", "Done"]).capitalization_style == "normal"


def test_punctuation_and_emoji_ratios() -> None:
    messages = ["great job! \U0001F389", "thanks!", "hmm...", "fine", "ok"]
    fingerprint = compute_fingerprint(messages)
    assert fingerprint.emoji_frequency == 0.2
    assert fingerprint.uses_exclamation is True
    assert fingerprint.uses_ellipsis is True


def test_greetings_and_sign_offs_are_distinct_and_lowercased() -> None:
    messages = ["Hey team", "hey again", "Morning all", "sounds good, thanks!", "see you. Cheers", "Thanks"]
    assert extract_greetings(messages) == ["hey", "morning"]
    assert extract_sign_offs(messages) == ["thanks", "cheers"]


def test_formality_levels() -> None:
    assert formality(["lol yeah", "gonna do it", "tbh fine", "please review"]) == "casual"
    assert formality(["please review", "could you check", "regarding the plan", "lol"]) == "formal"
    assert formality(["please review", "lol"]) == "neutral"


def test_length_buckets() -> None:
    assert length_bucket(49.9) == "short"
    assert length_bucket(50) == "medium"
    assert length_bucket(199) == "medium"
    assert length_bucket(200) == "long"


def test_average_length_is_rounded() -> None:
    fingerprint = compute_fingerprint(["abc", "abcd"])
    assert fingerprint.avg_message_length == 4
    assert fingerprint.typical_response_length == "short"


def test_ties_round_up() -> None:
    assert compute_fingerprint(["ab", "abc"]).avg_message_length == 3
    messages = ["nice \U0001F44D"] + ["ok"] * 7
    assert compute_fingerprint(messages).emoji_frequency == 0.13
    assert round_half_up(0.5) == 1
    assert round_half_up(0.125, 2) == 0.13


def test_representative_samples_spread_across_lengths() -> None:
    messages = ["x" * length for length in range(1, 101)]
    samples = select_representative_samples(messages, 10)
    assert len(samples) == 10
    assert [len(sample) for sample in samples] == [1, 11, 21, 31, 41, 51, 61, 71, 81, 91]


def test_representative_samples_keep_small_inputs() -> None:
    messages = ["b", "a"]
    assert select_representative_samples(messages, 50) == ["b", "a"]
