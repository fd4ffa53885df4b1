from unittest.mock import MagicMock

import pytest

from conftest import WINNING_PERMALINK, FakeAI, FakeReddit, verdict_json
from errors import InvalidPermalink, UpstreamUnavailable
from verifier import FALLBACK_PASS_THRESHOLD, fallback_verification, verify_submission

OTHER_PERMALINK = "/r/science/comments/abc123/octopus_hearts/c3/"


@pytest.fixture
def session():
    return {
        "game_id": "g1",
        "clue_text": "Seek the note about a creature whose circulation relies on a metal other than iron.",
        "extracted_fact": "Octopus blood is blue because of copper-based hemocyanin.",
        "winning_comment_permalink": WINNING_PERMALINK,
    }


def fixed_rng(value):
    rng = MagicMock()
    rng.random.return_value = value
    return rng


def test_exact_permalink_is_perfect_without_asking_ai(session):
    ai = FakeAI()
    result = verify_submission(session, WINNING_PERMALINK, FakeReddit(), ai)
    assert result.is_correct and result.perfect_match
    assert result.confidence == 1.0
    assert ai.prompts == []


def test_ai_accepts_equivalent_comment(session):
    ai = FakeAI("```json\n" + verdict_json(True, 0.85) + "\n```")
    result = verify_submission(session, OTHER_PERMALINK, FakeReddit(), ai)
    assert result.is_correct
    assert not result.perfect_match
    assert result.confidence == 0.85
    assert not result.from_fallback
    prompt = ai.prompts[0][1]
    assert session["clue_text"] in prompt
    assert WINNING_PERMALINK in prompt
    assert "I love the ocean." in prompt


def test_ai_rejects_unrelated_comment(session):
    result = verify_submission(session, OTHER_PERMALINK, FakeReddit(), FakeAI(verdict_json(False, 0.2)))
    assert not result.is_correct
    assert result.feedback == "Not quite."


def test_unknown_comment_is_invalid_permalink(session):
    with pytest.raises(InvalidPermalink):
        verify_submission(session, "/r/science/comments/abc123/x/nope/", FakeReddit(), FakeAI())


def test_reddit_outage_is_invalid_permalink(session):
    reddit = FakeReddit()
    reddit.fail_comment_lookup = True
    with pytest.raises(InvalidPermalink):
        verify_submission(session, WINNING_PERMALINK, reddit, FakeAI())


@pytest.mark.parametrize("ai_answer", [UpstreamUnavailable("down"), "no idea", '{"isCorrect": "maybe"}'])
def test_ai_failure_uses_random_fallback(session, ai_answer):
    passing = verify_submission(session, OTHER_PERMALINK, FakeReddit(), FakeAI(ai_answer), rng=fixed_rng(0.9))
    assert passing.from_fallback
    assert passing.is_correct
    assert not passing.perfect_match


def test_fallback_rejects_below_threshold(session):
    failing = verify_submission(session, OTHER_PERMALINK, FakeReddit(), FakeAI(), rng=fixed_rng(0.1))
    assert failing.from_fallback
    assert not failing.is_correct
    assert 0.1 <= failing.confidence <= 0.5


def test_fallback_confidence_bands():
    assert fallback_verification(True, fixed_rng(0.0)).confidence == 1.0
    accepted = fallback_verification(False, fixed_rng(FALLBACK_PASS_THRESHOLD + 0.5))
    assert accepted.is_correct and 0.6 <= accepted.confidence <= 0.9
    rejected = fallback_verification(False, fixed_rng(FALLBACK_PASS_THRESHOLD))
    assert not rejected.is_correct
