"""
Reward settlement for a won hunt.

Runs only after the session has been moved active -> won by a conditional
update, so at most one request ever settles a given game. The payment and the
stats update are separate writes; the payment lease and the per-game stats
guard make re-running settlement for the same game harmless.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from pymongo.errors import PyMongoError

import config
import sessions
import user_stats
from errors import UpstreamUnavailable
from ledger_client import AlgorandLedger, synthetic_transaction_id

logger = logging.getLogger(__name__)


@dataclass
class Settlement:
    difficulty: str
    base_reward: int
    bonus_reward: int
    transaction_id: str
    is_first_win: bool
    payment_pending: bool = False
    stats_recorded: bool = True
    nft_achievement: Optional[str] = None
    nft_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_reward(self) -> int:
        return self.base_reward + self.bonus_reward

    @property
    def algo_earned(self) -> float:
        return to_algos(self.total_reward)


def to_algos(micro_algos: int) -> float:
    return micro_algos / config.MICROALGOS_PER_ALGO


def determine_difficulty(clue_text: str) -> str:
    clue_length = len(clue_text or "")
    if clue_length < 100:
        return "beginner"
    if clue_length < 200:
        return "intermediate"
    return "expert"


def determine_post_difficulty(comment_count: int, score: int) -> str:
    """Difficulty shown when a hunt starts, judged from the thread itself."""
    if comment_count <= 5 and score < 100:
        return "beginner"
    if comment_count <= 15 and score < 500:
        return "intermediate"
    return "expert"


def compute_reward(difficulty: str, perfect_match: bool) -> tuple:
    base = config.REWARD_AMOUNTS.get(difficulty, config.REWARD_AMOUNTS["beginner"])
    bonus = config.PERFECT_MATCH_BONUS if perfect_match else 0
    return base, bonus


def achievement_for(is_first_win: bool, perfect_match: bool, difficulty: str) -> Optional[str]:
    if is_first_win:
        return "first_discovery"
    if perfect_match and difficulty == "expert":
        return "perfect_expert"
    return None


def issue_payment(ledger: AlgorandLedger, wallet: str, amount: int, game_id: str) -> tuple:
    """Pay the reward; on failure hand back a synthetic id and mark the payment pending."""
    try:
        txid = ledger.pay(wallet, amount, f"MindMiner reward for game {game_id}", idempotency_key=game_id)
        return txid, False
    except UpstreamUnavailable as exc:
        txid = synthetic_transaction_id()
        logger.error(f"Algorand transaction error for game {game_id}, reward pending as {txid}: {exc}")
        return txid, True


def settle_win(session: dict, perfect_match: bool, completion_time: int,
               ledger: AlgorandLedger) -> Settlement:
    """Pay out and record a win for a session already in status won."""
    game_id = session["game_id"]
    wallet = session["user_wallet"]

    difficulty = determine_difficulty(session["clue_text"])
    base, bonus = compute_reward(difficulty, perfect_match)

    stats = user_stats.get(wallet)
    is_first_win = not stats or stats.get("total_hunts_completed", 0) == 0

    txid, pending = issue_payment(ledger, wallet, base + bonus, game_id)
    sessions.record_audit(game_id, "won", algo_reward=to_algos(base + bonus), transaction_id=txid)

    stats_recorded = True
    try:
        user_stats.apply_hunt_completion(wallet, game_id, completion_time, to_algos(base + bonus))
    except (user_stats.StatsUpdateConflict, PyMongoError) as exc:
        # win and payment stand; logged for reconciliation
        stats_recorded = False
        logger.error(f"Stats update failed for game {game_id} after payment {txid}: {exc}")

    achievement = achievement_for(is_first_win, perfect_match, difficulty)
    settlement = Settlement(
        difficulty=difficulty,
        base_reward=base,
        bonus_reward=bonus,
        transaction_id=txid,
        is_first_win=is_first_win,
        payment_pending=pending,
        stats_recorded=stats_recorded,
        nft_achievement=achievement,
    )
    if achievement:
        settlement.nft_metadata = {
            "hunt_difficulty": difficulty,
            "completion_time": completion_time,
            "perfect_match": perfect_match,
            "minted_for": "hunt_completion",
        }
    logger.info(f"Settled game {game_id}: {base + bonus} microAlgos to {wallet} ({difficulty})")
    return settlement
