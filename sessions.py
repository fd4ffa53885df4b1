"""
Session Store

One document per hunt in the ``gamesession`` collection. Status only moves
forward (active -> won | lost | timeout); every transition is written with the
expected current status in the filter, so a lost race shows up as ``None``
instead of a second transition.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

import config
import database
from schemas import GameSession, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

COLLECTION = "gamesession"

# Fields a client may see for a session in any state
_PUBLIC_FIELDS = (
    "game_id", "user_wallet", "reddit_post_url", "subreddit", "clue_text", "status",
    "expiration_timestamp", "created_at", "submitted_permalink", "completion_time",
    "algo_reward", "transaction_id",
)


def _as_session(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc["game_id"] = doc.pop("id")
    return doc


def expiration_from(now: datetime) -> datetime:
    return now + timedelta(minutes=config.HUNT_DURATION_MINUTES)


def create(session: GameSession) -> Dict[str, Any]:
    if session.status != "active":
        raise ValueError("sessions are created active")
    game_id = database.create_document(COLLECTION, session)
    logger.info(f"Created game session {game_id} for wallet {session.user_wallet}")
    return get(game_id)


def get(game_id: str) -> Optional[Dict[str, Any]]:
    return _as_session(database.get_document_by_id(COLLECTION, game_id))


def update_if_status(game_id: str, expected_status: str, updates: dict) -> Optional[Dict[str, Any]]:
    """Compare-and-swap: apply updates only while the session is in expected_status.

    Returns the updated session, or None on conflict (status moved on or no
    such session).
    """
    oid = database.to_object_id(game_id)
    if oid is None:
        return None
    updated = database.update_document(COLLECTION, {"_id": oid, "status": expected_status}, updates)
    if updated is None:
        logger.info(f"Conditional update on {game_id} skipped: status is no longer {expected_status}")
        return None
    if "status" in updates and updates["status"] != expected_status:
        logger.info(f"Game session {game_id}: {expected_status} -> {updates['status']}")
    return _as_session(updated)


def transition(game_id: str, new_status: str, **fields) -> Optional[Dict[str, Any]]:
    """Move an active session to a terminal status."""
    if new_status not in TERMINAL_STATUSES:
        raise ValueError(f"not a terminal status: {new_status}")
    return update_if_status(game_id, "active", {"status": new_status, **fields})


def record_audit(game_id: str, expected_status: str, **fields) -> Optional[Dict[str, Any]]:
    """Fill audit fields on a session that has already reached expected_status."""
    if "status" in fields:
        raise ValueError("audit updates cannot change status")
    return update_if_status(game_id, expected_status, fields)


def mark_expired_before(now: datetime) -> int:
    count = database.update_many(
        COLLECTION,
        {"status": "active", "expiration_timestamp": {"$lt": now}},
        {"status": "timeout"},
    )
    if count:
        logger.info(f"Marked {count} expired game sessions as timeout")
    return count


def list_for_wallet(wallet_address: str, limit: int = 10, status: str = None) -> List[Dict[str, Any]]:
    filter_dict = {"user_wallet": wallet_address}
    if status:
        filter_dict["status"] = status
    docs = database.get_documents(COLLECTION, filter_dict, limit, sort=[("created_at", -1)])
    return [_as_session(d) for d in docs]


def public_view(session: Dict[str, Any]) -> Dict[str, Any]:
    """Strip the hidden target; the fact is only shown once the hunt is won."""
    view = {k: session.get(k) for k in _PUBLIC_FIELDS}
    if session.get("status") == "won":
        view["extracted_fact"] = session.get("extracted_fact")
    return view
