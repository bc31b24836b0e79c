"""Tests for content hashing and macro substitution."""

from shared.helper.HelperHash import compute_string_hash, get_hash_value
from shared.helper.HelperMacros import substitute_params


def test_hash_is_deterministic_and_53_bit():
    for text in ["", "a", "hello world", "日本語", "emoji 😀"]:
        value = compute_string_hash(text)
        assert value == compute_string_hash(text)
        assert 0 <= value < 2 ** 53


def test_hash_distinguishes_similar_strings():
    values = {compute_string_hash(t) for t in ["revenge", "revenue", "a", "b", "A"]}
    assert len(values) == 5


def test_seed_changes_hash():
    assert compute_string_hash("text", seed=1) != compute_string_hash("text")


def test_memoized_hash_matches():
    assert get_hash_value("chunk text") == compute_string_hash("chunk text")


def test_substitute_params_case_insensitive():
    assert substitute_params("Hi {{User}}, I am {{ char }}.", {"user": "Bob", "char": "Alice"}) == "Hi Bob, I am Alice."


def test_substitute_params_leaves_unknown_and_none():
    assert substitute_params("{{text}} {{missing}} {{char}}", {"text": "x", "char": None}) == "x {{missing}} {{char}}"


def test_substituted_values_are_not_rescanned():
    assert substitute_params("{{text}}", {"text": "{{user}}", "user": "Bob"}) == "{{user}}"
