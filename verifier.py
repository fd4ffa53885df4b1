"""
Submission verification

An exact permalink match always wins. Anything else is judged by the AI
against the clue and fact. When the AI cannot be reached or answers garbage,
a random judgement keeps the game playable: non-exact submissions then pass
70% of the time. That fallback trades verification fidelity for availability
and is logged every time it is used.
"""

import logging
import random
from dataclasses import dataclass, asdict
from typing import Dict, Any

from ai_client import GeminiClient, AiDecodeError, decode_json_object
from errors import InvalidPermalink, UpstreamUnavailable
from reddit_client import RedditClient
from schemas import AiVerdict, RedditComment

logger = logging.getLogger(__name__)

FALLBACK_PASS_THRESHOLD = 0.3

VERIFY_SYSTEM_PART = "You are an expert at verifying Reddit content submissions for educational hunt games."

VERIFY_PROMPT = """
You are an AI verifier for MindMiner, a Reddit knowledge hunt game. Your task is to verify if a user's submission is correct.

ORIGINAL HUNT DETAILS:
- Clue Given: "{clue}"
- Expected Fact: "{fact}"
- Expected Comment Permalink: "{expected}"

USER SUBMISSION:
- Submitted Permalink: "{submitted}"
- Submitted Comment Author: "{author}"
- Submitted Comment Content: "{body}"

VERIFICATION CRITERIA:
1. Does the submitted comment contain the same educational fact or very similar information?
2. Is the submitted comment relevant to the original clue?
3. Rate the overall correctness and provide confidence level

Respond with only a JSON object:
{{
  "isCorrect": boolean,
  "confidence": number (0.0 to 1.0),
  "feedback": "User-friendly feedback message",
  "reasoning": "Detailed explanation of the verification decision",
  "factMatch": boolean,
  "relevanceScore": number (0.0 to 1.0)
}}
"""


@dataclass
class VerificationResult:
    is_correct: bool
    perfect_match: bool
    confidence: float
    feedback: str
    reasoning: str = ""
    from_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def perfect_match_result() -> VerificationResult:
    return VerificationResult(
        is_correct=True,
        perfect_match=True,
        confidence=1.0,
        feedback="Perfect match! You found the exact comment we were looking for.",
        reasoning="The submitted permalink is the target comment.",
    )


def fallback_verification(perfect_match: bool, rng: random.Random) -> VerificationResult:
    is_correct = perfect_match or rng.random() > FALLBACK_PASS_THRESHOLD
    if perfect_match:
        confidence = 1.0
    elif is_correct:
        confidence = rng.random() * 0.3 + 0.6
    else:
        confidence = rng.random() * 0.4 + 0.1
    if is_correct:
        feedback = ("Perfect match! You found the exact comment we were looking for." if perfect_match
                    else "Great job! Your submission contains the correct information.")
        reasoning = "The submitted comment contains the expected educational content and matches the hunt criteria."
    else:
        feedback = "This comment doesn't match the hunt criteria. The content doesn't contain the expected educational fact."
        reasoning = "The submitted comment does not contain the specific educational fact that was the target of this hunt."
    return VerificationResult(is_correct, perfect_match, confidence, feedback, reasoning, from_fallback=True)


def fetch_submitted_comment(reddit: RedditClient, permalink: str) -> RedditComment:
    try:
        comment = reddit.get_comment_by_permalink(permalink)
    except UpstreamUnavailable as exc:
        logger.warning(f"Error fetching comment from permalink {permalink}: {exc}")
        comment = None
    if comment is None:
        raise InvalidPermalink("Could not retrieve comment from the provided permalink")
    return comment


def judge_with_ai(ai: GeminiClient, session: dict, comment: RedditComment,
                  submitted_permalink: str) -> VerificationResult:
    """Ask the AI for a verdict; raises UpstreamUnavailable or AiDecodeError."""
    prompt = VERIFY_PROMPT.format(
        clue=session["clue_text"],
        fact=session["extracted_fact"],
        expected=session["winning_comment_permalink"],
        submitted=submitted_permalink,
        author=comment.author,
        body=comment.body,
    )
    text = ai.complete([VERIFY_SYSTEM_PART, prompt], max_tokens=500, temperature=0.3)
    verdict = decode_json_object(text, AiVerdict)
    return VerificationResult(
        is_correct=verdict.isCorrect,
        perfect_match=False,
        confidence=verdict.confidence,
        feedback=verdict.feedback or ("Great job! Your submission contains the correct information."
                                      if verdict.isCorrect else "This comment doesn't match the hunt criteria."),
        reasoning=verdict.reasoning,
    )


def verify_submission(session: dict, submitted_permalink: str, reddit: RedditClient,
                      ai: GeminiClient, rng: random.Random = None) -> VerificationResult:
    """Judge a submission for a session that is already known to be active, in time and owned."""
    rng = rng or random.Random()
    comment = fetch_submitted_comment(reddit, submitted_permalink)
    perfect_match = submitted_permalink == session["winning_comment_permalink"]
    if perfect_match:
        return perfect_match_result()

    try:
        return judge_with_ai(ai, session, comment, submitted_permalink)
    except (UpstreamUnavailable, AiDecodeError) as exc:
        logger.warning(f"AI verification unavailable for game {session.get('game_id')}, "
                       f"using random fallback: {exc}")
        return fallback_verification(perfect_match, rng)
