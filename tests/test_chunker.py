import random
import string

import pytest

from studymate.services.chunker import chunk_text, split_paragraphs, split_sentences


def _random_document(rng: random.Random) -> str:
    paragraphs = []
    for _ in range(rng.randint(1, 30)):
        sentences = []
        for _ in range(rng.randint(1, 25)):
            words = [
                "".join(rng.choices(string.ascii_lowercase, k=rng.randint(1, 12)))
                for _ in range(rng.randint(1, 40))
            ]
            sentences.append(" ".join(words) + rng.choice(".!?"))
        paragraphs.append(" ".join(sentences))
    return "\n\n".join(paragraphs)


# ── Bounds ─────────────────────────────────────────────────────


@pytest.mark.parametrize("seed", range(25))
def test_chunks_respect_size_and_count_limits(seed):
    rng = random.Random(seed)
    text = _random_document(rng)
    max_size = rng.choice([50, 200, 1000, 4000])
    max_chunks = rng.choice([1, 3, 10, 50])

    chunks = chunk_text(text, max_size, max_chunks)

    assert len(chunks) <= max_chunks
    assert all(0 < len(c) <= max_size for c in chunks)


@pytest.mark.parametrize("seed", range(10))
def test_chunks_keep_document_order(seed):
    rng = random.Random(1000 + seed)
    text = _random_document(rng)

    chunks = chunk_text(text, 300, 1000)

    position = 0
    for chunk in chunks:
        first_piece = chunk.split("\n\n")[0].split(" ")[0]
        found = text.find(first_piece, position)
        assert found >= position
        position = found


@pytest.mark.parametrize("seed", range(15))
def test_chunks_are_a_prefix_of_the_text_when_nothing_is_truncated(seed):
    rng = random.Random(2000 + seed)
    text = _random_document(rng)
    max_chunks = rng.choice([1, 2, 5, 50])

    # Generated sentences stay under 1000 chars, so none are cut
    chunks = chunk_text(text, 1000, max_chunks)

    joined = " ".join(" ".join(chunks).split())
    assert " ".join(text.split()).startswith(joined)


def test_chunk_cap_drops_the_tail():
    text = "\n\n".join(f"Paragraph {i}. " + "x" * 80 for i in range(20))

    chunks = chunk_text(text, 100, 3)

    assert len(chunks) == 3
    assert chunks[0].startswith("Paragraph 0.")
    assert chunks[2].startswith("Paragraph 2.")


# ── Edge cases ─────────────────────────────────────────────────


@pytest.mark.parametrize("text", ["", "   ", "\n\n\t\n"])
def test_empty_or_blank_input_gives_no_chunks(text):
    assert chunk_text(text) == []


def test_text_that_fits_is_returned_unchanged():
    text = "  A short note.\n\nWith two paragraphs.  "
    assert chunk_text(text, 4000) == [text]


def test_text_exactly_at_limit_is_one_chunk():
    text = "y" * 4000
    assert chunk_text(text, 4000) == [text]


@pytest.mark.parametrize("size, count", [(0, 5), (-1, 5), (100, 0)])
def test_non_positive_limits_are_rejected(size, count):
    with pytest.raises(ValueError):
        chunk_text("some text", size, count)


def test_oversized_paragraph_is_split_into_sentences():
    sentences = [f"Sentence {i} " + "z" * 40 + "." for i in range(10)]
    paragraph = " ".join(sentences)

    chunks = chunk_text(paragraph, 120, 50)

    assert len(chunks) > 1
    assert all(len(c) <= 120 for c in chunks)
    assert " ".join(chunks) == paragraph


def test_oversized_sentence_is_truncated():
    long_sentence = "w" * 500 + "."
    text = "Intro sentence.\n\n" + long_sentence

    chunks = chunk_text(text, 100, 50)

    assert chunks[0] == "Intro sentence."
    assert chunks[1] == "w" * 100


# ── Scenario ───────────────────────────────────────────────────


def test_nine_thousand_characters_make_three_chunks():
    paragraphs = ["a" * 998] * 8 + ["b" * 1000]
    text = "\n\n".join(paragraphs)
    assert len(text) == 9000

    chunks = chunk_text(text, max_chunk_size=4000)

    assert len(chunks) == 3
    assert all(len(c) <= 4000 for c in chunks)
    assert "\n\n".join(chunks) == text


# ── Splitters ──────────────────────────────────────────────────


def test_split_paragraphs_ignores_blank_runs():
    assert split_paragraphs("one\n\n\n  \ntwo\n \nthree") == ["one", "two", "three"]


def test_split_sentences_on_terminal_punctuation():
    assert split_sentences("Is it? Yes! It is. ok") == ["Is it?", "Yes!", "It is.", "ok"]
