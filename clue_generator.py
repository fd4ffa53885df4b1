"""
Clue generation

The AI reads a post and its first comments, picks the most educational one and
writes a clue that points at it without quoting it. Anything short of a clean,
well-formed answer falls back to a fixed clue on the first comment, so a hunt
never fails at this stage.
"""

import logging
import random
from dataclasses import dataclass
from typing import List

import config
from ai_client import GeminiClient, AiDecodeError, decode_json_object
from errors import UpstreamUnavailable
from schemas import ClueAnalysis, RedditComment, RedditPost

logger = logging.getLogger(__name__)

CLUE_SYSTEM_PART = "You are an expert at analyzing Reddit content and creating engaging educational hunt clues."

CLUE_PROMPT = """
You are an AI assistant for MindMiner, a Reddit knowledge hunt game. Analyze the following Reddit post and comments to:

1. Extract the most educational/interesting fact from the comments
2. Generate a "Ctrl+F resistant" clue that guides players to find the specific comment containing this fact
3. Identify which comment contains the winning fact

POST:
{post}

COMMENTS:
{comments}

REQUIREMENTS:
- The clue should be specific enough to guide players but not so obvious that they can just Ctrl+F for keywords
- Do not quote exact phrases from the comment
- Focus on educational value and interesting facts
- The clue should describe what to look for rather than exact words to search

Respond with only a JSON object:
{{
  "fact": "The educational fact extracted from the winning comment",
  "clue": "A Ctrl+F resistant clue that guides players to the winning comment",
  "winning_comment_id": "The ID of the comment containing the fact",
  "index": <number: position of the winning comment in the list above, starting at 0>,
  "reasoning": "Brief explanation of why this comment was chosen"
}}
"""

FUN_FACT_PROMPT = (
    "Generate a fascinating, educational fun fact that would interest Reddit users. "
    "Make it surprising and memorable. Keep it under 150 words."
)

FALLBACK_CLUE = (
    "Look for a comment that explains the biological reason behind an unusual cardiovascular "
    "system and mentions a specific metal that gives blood its unique color."
)
FALLBACK_FACT = (
    "Octopuses have three hearts and blue blood due to copper-based hemocyanin instead of "
    "iron-based hemoglobin."
)

FALLBACK_FUN_FACTS = [
    "Honey never spoils. Archaeologists have found pots of honey in ancient Egyptian tombs that are "
    "over 3,000 years old and still perfectly edible.",
    "A group of flamingos is called a \"flamboyance.\" These birds get their pink color from the "
    "carotenoids in the algae and crustaceans they eat.",
    "The human brain uses about 20% of the body's total energy, despite only making up about 2% of body weight.",
    "Bananas are berries, but strawberries aren't. Botanically speaking, berries must have seeds inside their flesh.",
    "There are more possible games of chess than there are atoms in the observable universe.",
]


@dataclass
class GeneratedClue:
    clue: str
    fact: str
    winning_comment: RedditComment
    from_fallback: bool = False


def build_clue_prompt(post: RedditPost, comments: List[RedditComment]) -> str:
    post_content = f"Title: {post.title}\nContent: {post.selftext or 'Link post'}"
    comments_text = "\n\n".join(
        f"[{i}] (id: {c.id}) Comment by {c.author}: {c.body}" for i, c in enumerate(comments)
    )
    return CLUE_PROMPT.format(post=post_content, comments=comments_text)


def parse_clue_response(text: str, candidates: List[RedditComment]) -> GeneratedClue:
    """Decode the AI answer against the comments it was shown; raises AiDecodeError."""
    analysis = decode_json_object(text, ClueAnalysis)
    if not 0 <= analysis.index < len(candidates):
        raise AiDecodeError(f"AI selected invalid comment index {analysis.index}")
    return GeneratedClue(
        clue=analysis.clue.strip(),
        fact=analysis.fact.strip(),
        winning_comment=candidates[analysis.index],
    )


def fallback_clue(comments: List[RedditComment]) -> GeneratedClue:
    return GeneratedClue(clue=FALLBACK_CLUE, fact=FALLBACK_FACT, winning_comment=comments[0], from_fallback=True)


def generate_clue(ai: GeminiClient, post: RedditPost, comments: List[RedditComment]) -> GeneratedClue:
    """Always returns a usable clue for a non-empty comment list."""
    if not comments:
        raise ValueError("cannot generate a clue without comments")
    candidates = comments[:config.AI_COMMENT_LIMIT]
    try:
        text = ai.complete([CLUE_SYSTEM_PART, build_clue_prompt(post, candidates)],
                           max_tokens=500, temperature=0.7)
        return parse_clue_response(text, candidates)
    except (UpstreamUnavailable, AiDecodeError) as exc:
        logger.warning(f"AI analysis failed, using fallback clue: {exc}")
        return fallback_clue(comments)


def generate_general_fact(ai: GeminiClient, rng: random.Random = None) -> str:
    rng = rng or random.Random()
    try:
        text = ai.complete([CLUE_SYSTEM_PART, FUN_FACT_PROMPT], max_tokens=500, temperature=0.7)
    except UpstreamUnavailable as exc:
        logger.warning(f"General fact generation failed: {exc}")
        return rng.choice(FALLBACK_FUN_FACTS)
    text = (text or "").strip()
    return text or rng.choice(FALLBACK_FUN_FACTS)
