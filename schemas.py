"""
Mind-Miner Schemas

Each stored class corresponds to a MongoDB collection (lowercased class name).
"""
from pydantic import BaseModel, Field, StrictInt
from typing import Optional, List, Dict, Any
from datetime import datetime

SESSION_STATUSES = ("active", "won", "lost", "timeout")
TERMINAL_STATUSES = ("won", "lost", "timeout")


# -------- Stored documents --------

class UserStats(BaseModel):
    wallet_address: str = Field(..., min_length=1)
    total_hunts_completed: int = Field(0, ge=0)
    total_reward_earned: float = Field(0.0, ge=0, description="Algos earned across won hunts")
    avg_completion_time: float = Field(0.0, ge=0, description="Mean seconds over won hunts only")
    last_general_fact: str = ""
    settled_game_ids: List[str] = Field(default_factory=list, description="Games already folded into the aggregates")


class GameSession(BaseModel):
    user_wallet: str
    reddit_post_url: str
    subreddit: str
    winning_comment_permalink: str
    clue_text: str
    extracted_fact: str
    expiration_timestamp: datetime
    status: str = Field("active", description="active, won, lost, timeout")
    submitted_permalink: Optional[str] = None
    completion_time: Optional[int] = None
    algo_reward: Optional[float] = None
    transaction_id: Optional[str] = None


class AchievementNft(BaseModel):
    user_wallet: str
    achievement_type: str
    hunt_id: Optional[str] = None
    asset_id: int
    transaction_id: str
    rarity: str = "common"
    metadata: Dict[str, Any] = {}
    mint_date: datetime


# -------- Reddit records --------

class RedditPost(BaseModel):
    id: str
    title: str = ""
    selftext: str = ""
    score: int = 0
    num_comments: int = 0
    stickied: bool = False
    is_self: bool = False
    created_utc: float = 0.0


class RedditComment(BaseModel):
    id: str
    author: str = "[unknown]"
    body: str
    score: int = 0
    created_utc: float = 0.0
    permalink: str = ""


# -------- AI decode targets --------

class ClueAnalysis(BaseModel):
    fact: str = Field(..., min_length=1)
    clue: str = Field(..., min_length=1)
    winning_comment_id: Optional[str] = None
    index: StrictInt
    reasoning: str = ""


class AiVerdict(BaseModel):
    isCorrect: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    feedback: str = ""
    reasoning: str = ""
    factMatch: Optional[bool] = None
    relevanceScore: Optional[float] = Field(None, ge=0.0, le=1.0)


# -------- Request bodies --------

class StartHuntRequest(BaseModel):
    wallet_address: str


class SubmitDiscoveryRequest(BaseModel):
    user_wallet: str
    submitted_permalink: str
