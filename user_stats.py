"""
User Stats Store

Running aggregates per wallet in the ``userstats`` collection. Only won hunts
touch the aggregates, and each game is folded in at most once.
"""

import logging
from typing import Optional, Dict, Any, List

from pymongo.errors import DuplicateKeyError

import database
from schemas import UserStats

logger = logging.getLogger(__name__)

COLLECTION = "userstats"
MAX_UPDATE_ATTEMPTS = 10

LEADERBOARD_ORDERS = ("total_reward_earned", "total_hunts_completed", "avg_completion_time")


class StatsUpdateConflict(Exception):
    """The aggregate kept changing underneath us."""


def get(wallet_address: str) -> Optional[Dict[str, Any]]:
    return database.find_one(COLLECTION, {"wallet_address": wallet_address})


def upsert(wallet_address: str, **fields) -> Dict[str, Any]:
    """Set the given fields, creating a zeroed record if the wallet is new."""
    defaults = UserStats(wallet_address=wallet_address).model_dump()
    on_insert = {k: v for k, v in defaults.items() if k not in fields and k != "wallet_address"}
    try:
        return database.upsert_document(COLLECTION, {"wallet_address": wallet_address}, fields, on_insert)
    except DuplicateKeyError:
        # another request created the record first; the retry matches it
        return database.upsert_document(COLLECTION, {"wallet_address": wallet_address}, fields, on_insert)


def ensure_exists(wallet_address: str) -> Dict[str, Any]:
    existing = get(wallet_address)
    if existing:
        return existing
    logger.info(f"Creating new user: {wallet_address}")
    return upsert(wallet_address)


def apply_hunt_completion(wallet_address: str, game_id: str, completion_time: float,
                          reward_earned: float) -> Dict[str, Any]:
    """Fold one won hunt into the wallet's aggregates.

    The new mean is computed from the count read alongside it and written
    only while that count is unchanged, so concurrent completions retry
    instead of drifting. Re-applying the same game_id is a no-op.
    """
    for _ in range(MAX_UPDATE_ATTEMPTS):
        current = ensure_exists(wallet_address)
        if game_id in current.get("settled_game_ids", []):
            logger.info(f"Game {game_id} already counted for {wallet_address}")
            return current

        count = current.get("total_hunts_completed", 0)
        avg = current.get("avg_completion_time", 0.0)
        new_count = count + 1
        new_avg = (avg * count + completion_time) / new_count

        updated = database.update_document(
            COLLECTION,
            {
                "wallet_address": wallet_address,
                "total_hunts_completed": count,
                "settled_game_ids": {"$ne": game_id},
            },
            {"total_hunts_completed": new_count, "avg_completion_time": new_avg},
            push={"settled_game_ids": game_id},
            inc={"total_reward_earned": reward_earned},
        )
        if updated is not None:
            return updated
    raise StatsUpdateConflict(f"Could not update stats for {wallet_address} after {MAX_UPDATE_ATTEMPTS} attempts")


def leaderboard(order_by: str = "total_reward_earned", limit: int = 10) -> List[Dict[str, Any]]:
    if order_by not in LEADERBOARD_ORDERS:
        raise ValueError(f"Cannot order leaderboard by {order_by}")
    direction = 1 if order_by == "avg_completion_time" else -1  # lower time is better
    filter_dict = {}
    if order_by == "avg_completion_time":
        filter_dict = {"total_hunts_completed": {"$gt": 0}}
    docs = database.get_documents(COLLECTION, filter_dict, limit, sort=[(order_by, direction)])
    board = []
    for rank, doc in enumerate(docs, start=1):
        wallet = doc["wallet_address"]
        board.append({
            "rank": rank,
            "wallet_address": wallet,
            "wallet_display": f"{wallet[:6]}...{wallet[-4:]}",
            "total_reward_earned": doc.get("total_reward_earned", 0.0),
            "total_hunts_completed": doc.get("total_hunts_completed", 0),
            "avg_completion_time": doc.get("avg_completion_time", 0.0),
        })
    return board
