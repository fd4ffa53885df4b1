"""
Hunt lifecycle

start_hunt creates an active session; submit_discovery moves it to won, lost
or timeout; cleanup_expired_sessions times out whatever nobody submitted to.
Every transition is a conditional update on status == active, so when two
submissions race only one of them gets to act on the result.
"""

import logging
import random
import time
from typing import Callable, Dict, Any, Optional

import database
import sessions
import user_stats
from ai_client import GeminiClient
from clue_generator import generate_clue, generate_general_fact
from errors import InvalidRequest, NoCommentsFound, OwnershipMismatch, SessionNotFound, UpstreamUnavailable
from ledger_client import AlgorandLedger
from reddit_client import RedditClient
from schemas import GameSession
from selector import select_suitable_post
from settlement import settle_win, determine_post_difficulty, to_algos
from verifier import verify_submission

logger = logging.getLogger(__name__)


def _require(value: Optional[str], what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidRequest(f"{what} is required")
    return value


# -------- Start --------

def start_hunt(wallet_address: str, reddit: RedditClient, ai: GeminiClient,
               rng: random.Random = None, sleep: Callable[[float], None] = time.sleep) -> Dict[str, Any]:
    wallet_address = _require(wallet_address, "Wallet address")
    rng = rng or random.Random()
    logger.info(f"Starting hunt for wallet: {wallet_address}")

    user_stats.ensure_exists(wallet_address)

    subreddit, post = select_suitable_post(reddit, rng=rng, sleep=sleep)
    logger.info(f"Selected post: {post.id} from r/{subreddit}")

    try:
        comments = reddit.get_post_comments(post.id)
    except UpstreamUnavailable as exc:
        logger.warning(f"Error fetching comments for post {post.id}: {exc}")
        comments = []
    if not comments:
        raise NoCommentsFound(f"No comments found for post {post.id}")
    logger.info(f"Fetched {len(comments)} comments")

    generated = generate_clue(ai, post, comments)
    general_fact = generate_general_fact(ai, rng=rng)

    post_url = f"https://reddit.com/r/{subreddit}/comments/{post.id}"
    now = database.utcnow()
    session = sessions.create(GameSession(
        user_wallet=wallet_address,
        reddit_post_url=post_url,
        subreddit=subreddit,
        winning_comment_permalink=generated.winning_comment.permalink,
        clue_text=generated.clue,
        extracted_fact=generated.fact,
        expiration_timestamp=sessions.expiration_from(now),
    ))

    try:
        user_stats.upsert(wallet_address, last_general_fact=general_fact)
    except Exception as exc:
        logger.warning(f"Could not store general fact for {wallet_address}: {exc}")

    return {
        "success": True,
        "game_id": session["game_id"],
        "reddit_post_url": post_url,
        "clue": generated.clue,
        "general_fact": general_fact,
        "subreddit": f"r/{subreddit}",
        "expiration_time": session["expiration_timestamp"],
        "hunt_details": {
            "post_title": post.title,
            "post_score": post.score,
            "comment_count": post.num_comments,
            "difficulty": determine_post_difficulty(post.num_comments, post.score),
        },
    }


# -------- Submit --------

def _inactive(game_id: str, fallback_status: str = None) -> Dict[str, Any]:
    current = sessions.get(game_id)
    status = current["status"] if current else fallback_status
    return {
        "success": False,
        "outcome": "game_inactive",
        "reason": "game_inactive",
        "message": f"Game is no longer active. Status: {status}",
        "current_status": status,
    }


def submit_discovery(game_id: str, wallet_address: str, submitted_permalink: str,
                     reddit: RedditClient, ai: GeminiClient, ledger: AlgorandLedger,
                     rng: random.Random = None) -> Dict[str, Any]:
    """Judge a submission and apply the resulting transition.

    The returned dict may carry an ``nft_request`` (achievement type and
    metadata) which the caller mints after responding.
    """
    game_id = _require(game_id, "Game ID")
    wallet_address = _require(wallet_address, "User wallet")
    submitted_permalink = _require(submitted_permalink, "Submitted permalink")
    logger.info(f"Processing submission for game {game_id} from wallet {wallet_address}")

    session = sessions.get(game_id)
    if session is None:
        raise SessionNotFound("Game session not found")

    if session["status"] != "active":
        return _inactive(game_id, session["status"])

    now = database.utcnow()
    if now > session["expiration_timestamp"]:
        if sessions.transition(game_id, "timeout") is None:
            return _inactive(game_id)
        return {
            "success": False,
            "outcome": "timeout",
            "reason": "timeout",
            "message": "Time has expired for this hunt",
            "expired_at": session["expiration_timestamp"],
        }

    if session["user_wallet"] != wallet_address:
        raise OwnershipMismatch("Wallet address does not match game session owner")

    result = verify_submission(session, submitted_permalink, reddit, ai, rng=rng)
    completion_time = int((now - session["created_at"]).total_seconds())

    if not result.is_correct:
        lost = sessions.transition(game_id, "lost", submitted_permalink=submitted_permalink,
                                   completion_time=completion_time)
        if lost is None:
            return _inactive(game_id)
        return {
            "success": False,
            "outcome": "lost",
            "reason": "incorrect",
            "message": result.feedback,
            "verification": result.to_dict(),
            "completion_time": completion_time,
        }

    won = sessions.transition(game_id, "won", submitted_permalink=submitted_permalink,
                              completion_time=completion_time)
    if won is None:
        return _inactive(game_id)

    logger.info(f"Correct submission for game {game_id}, processing rewards...")
    settlement = settle_win(won, result.perfect_match, completion_time, ledger)

    response = {
        "success": True,
        "outcome": "won",
        "reason": "correct",
        "message": "Congratulations! You found the correct answer!",
        "rewards": {
            "algo_earned": settlement.algo_earned,
            "base_reward": to_algos(settlement.base_reward),
            "bonus_reward": to_algos(settlement.bonus_reward),
            "transaction_id": settlement.transaction_id,
            "payment_pending": settlement.payment_pending,
            "stats_pending": not settlement.stats_recorded,
            "nft_requested": settlement.nft_achievement,
        },
        "game_details": {
            "difficulty": settlement.difficulty,
            "completion_time": completion_time,
            "perfect_match": result.perfect_match,
            "is_first_win": settlement.is_first_win,
        },
        "verification": result.to_dict(),
        "extracted_fact": won["extracted_fact"],
    }
    if settlement.nft_achievement:
        response["nft_request"] = {
            "wallet_address": wallet_address,
            "achievement_type": settlement.nft_achievement,
            "hunt_id": game_id,
            "metadata": settlement.nft_metadata,
        }
    return response


# -------- Housekeeping --------

def cleanup_expired_sessions() -> Dict[str, Any]:
    count = sessions.mark_expired_before(database.utcnow())
    return {
        "success": True,
        "expired_sessions_updated": count,
        "message": f"{count} expired sessions marked as timeout",
    }
