"""
Achievement NFTs

Minting is a black box that hands back an asset id and a transaction id; the
record of what was minted for whom lives in the ``achievementnft`` collection.
"""

import logging
import secrets
import time
from typing import Optional, Dict, Any, List

from algosdk import encoding

import database
from schemas import AchievementNft

logger = logging.getLogger(__name__)

COLLECTION = "achievementnft"

ACHIEVEMENTS = {
    "first_discovery": ("common", "Commemorates your very first successful knowledge hunt on MindMiner."),
    "perfect_expert": ("epic", "Found the exact comment behind an expert-level clue."),
    "speed_demon": ("rare", "Awarded for completing multiple hunts with exceptional speed and accuracy."),
    "science_explorer": ("rare", "Recognizes mastery in discovering scientific knowledge and research."),
    "perfect_streak": ("epic", "Celebrates an impressive streak of consecutive successful hunts."),
    "knowledge_sage": ("legendary", "The highest honor for accumulated wisdom and discovery achievements."),
}
DEFAULT_DESCRIPTION = "Special achievement earned through exceptional performance in MindMiner hunts."


def rarity_of(achievement_type: str) -> str:
    return ACHIEVEMENTS.get(achievement_type, ("common", ""))[0]


def format_achievement_name(achievement_type: str) -> str:
    return " ".join(word.capitalize() for word in achievement_type.split("_"))


def build_metadata(achievement_type: str, hunt_id: str = None, extra: dict = None) -> Dict[str, Any]:
    _, description = ACHIEVEMENTS.get(achievement_type, ("common", DEFAULT_DESCRIPTION))
    attributes = [
        {"trait_type": "Achievement Type", "value": achievement_type},
        {"trait_type": "Rarity", "value": rarity_of(achievement_type)},
        {"trait_type": "Minted Date", "value": database.utcnow().date().isoformat()},
    ]
    if hunt_id:
        attributes.append({"trait_type": "Hunt ID", "value": hunt_id})
    metadata = {
        "name": f"MindMiner Achievement: {format_achievement_name(achievement_type)}",
        "description": description,
        "image": f"https://mindminer.app/nft-images/{achievement_type}.png",
        "external_url": "https://mindminer.app",
        "properties": {"category": "Achievement"},
    }
    if extra:
        extra = dict(extra)
        attributes.extend(extra.pop("attributes", []))
        metadata.update(extra)
    metadata["attributes"] = attributes
    return metadata


def _mint_asset(wallet_address: str, metadata: dict) -> Dict[str, Any]:
    asset_id = int(time.time() * 1000) + secrets.randbelow(1000)
    return {
        "asset_id": asset_id,
        "transaction_id": f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(5)}",
    }


def mint_achievement(wallet_address: str, achievement_type: str, hunt_id: str = None,
                     metadata: dict = None) -> Optional[Dict[str, Any]]:
    """Mint and record an achievement NFT. Failures are logged and yield None."""
    if not encoding.is_valid_address(wallet_address):
        logger.warning(f"NFT minting skipped, invalid Algorand wallet address: {wallet_address}")
        return None
    full_metadata = build_metadata(achievement_type, hunt_id, metadata)
    try:
        minted = _mint_asset(wallet_address, full_metadata)
        record = AchievementNft(
            user_wallet=wallet_address,
            achievement_type=achievement_type,
            hunt_id=hunt_id,
            asset_id=minted["asset_id"],
            transaction_id=minted["transaction_id"],
            rarity=rarity_of(achievement_type),
            metadata=full_metadata,
            mint_date=database.utcnow(),
        )
        nft_id = database.create_document(COLLECTION, record)
    except Exception as exc:
        logger.error(f"NFT minting error for {wallet_address} ({achievement_type}): {exc}")
        return None
    logger.info(f"NFT minted for {achievement_type}: asset {minted['asset_id']} to {wallet_address}")
    return database.get_document_by_id(COLLECTION, nft_id)


def list_for_wallet(wallet_address: str, limit: int = 50) -> List[Dict[str, Any]]:
    return database.get_documents(COLLECTION, {"user_wallet": wallet_address}, limit, sort=[("mint_date", -1)])
