"""
Mind-Miner settings

Everything is read from the environment (a local .env file is loaded first).
Missing third-party credentials switch the matching adapter to mock mode.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


# MongoDB
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Reddit
REDDIT_CLIENT_ID = os.getenv("REDDIT_CLIENT_ID")
REDDIT_CLIENT_SECRET = os.getenv("REDDIT_CLIENT_SECRET")
REDDIT_USER_AGENT = os.getenv("REDDIT_USER_AGENT", "MindMiner:1.0.0 (by /u/mindminer)")
REDDIT_TIMEOUT_SECONDS = _float("REDDIT_TIMEOUT_SECONDS", 15.0)

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_URL = os.getenv("GEMINI_URL")
AI_TIMEOUT_SECONDS = _float("AI_TIMEOUT_SECONDS", 30.0)

# Algorand
ALGORAND_NODE_SERVER = os.getenv("ALGORAND_NODE_SERVER", "https://testnet-api.algonode.cloud")
ALGORAND_NODE_TOKEN = os.getenv("ALGORAND_NODE_TOKEN", "")
ALGORAND_SENDER_MNEMONIC = os.getenv("ALGORAND_SENDER_MNEMONIC")
ALGORAND_CONFIRMATION_ROUNDS = _int("ALGORAND_CONFIRMATION_ROUNDS", 4)

# Hunt rules
HUNT_DURATION_MINUTES = _int("HUNT_DURATION_MINUTES", 30)
SELECTOR_MAX_ATTEMPTS = _int("SELECTOR_MAX_ATTEMPTS", 5)
SELECTOR_RETRY_DELAY_SECONDS = _float("SELECTOR_RETRY_DELAY_SECONDS", 1.0)
HOT_POST_LIMIT = _int("HOT_POST_LIMIT", 25)
MIN_POST_COMMENTS = _int("MIN_POST_COMMENTS", 1)
MAX_POST_COMMENTS = _int("MAX_POST_COMMENTS", 20)
AI_COMMENT_LIMIT = _int("AI_COMMENT_LIMIT", 10)

HUNT_SUBREDDITS = [
    "todayilearned",
    "explainlikeimfive",
    "science",
    "technology",
    "askscience",
    "history",
    "space",
    "futurology",
    "psychology",
    "philosophy",
]

# Rewards, in microAlgos
REWARD_AMOUNTS = {
    "beginner": 5 * 1000,
    "intermediate": 10 * 1000,
    "expert": 15 * 1000,
}
PERFECT_MATCH_BONUS = 3 * 1000
MICROALGOS_PER_ALGO = 1_000_000

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = _int("PORT", 8000)
