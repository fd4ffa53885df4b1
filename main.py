import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import database
import hunt
import nft
import sessions
import user_stats
from ai_client import GeminiClient
from errors import HuntError
from ledger_client import AlgorandLedger
from reddit_client import RedditClient
from schemas import StartHuntRequest, SubmitDiscoveryRequest

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Mind-Miner API...")
    if database.db is not None:
        database.ensure_indexes()
        logger.info("Database indexes ensured")
    else:
        logger.warning("Database not configured; hunt endpoints will fail until DATABASE_URL is set")
    yield
    logger.info("Shutting down Mind-Miner API...")


app = FastAPI(title="Mind-Miner API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HuntError)
async def hunt_error_handler(request: Request, exc: HuntError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.reason}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.reason, "detail": exc.message})


# -------- Collaborators --------

@lru_cache
def get_reddit() -> RedditClient:
    return RedditClient(config.REDDIT_CLIENT_ID, config.REDDIT_CLIENT_SECRET)


@lru_cache
def get_ai() -> GeminiClient:
    return GeminiClient(config.GEMINI_API_KEY, config.GEMINI_URL)


@lru_cache
def get_ledger() -> AlgorandLedger:
    return AlgorandLedger(config.ALGORAND_SENDER_MNEMONIC)


@app.get("/")
def root():
    return {"name": "Mind-Miner", "status": "ok"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": config.DATABASE_NAME or "❌ Not Set",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Connected"
            try:
                response["collections"] = database.list_collections()
            except Exception as e:
                response["collections"] = [f"error: {str(e)[:50]}"]
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


# -------- Hunts --------

@app.post("/hunts")
def start_hunt(payload: StartHuntRequest,
               reddit: RedditClient = Depends(get_reddit),
               ai: GeminiClient = Depends(get_ai)):
    return hunt.start_hunt(payload.wallet_address, reddit, ai)


@app.post("/hunts/{game_id}/submit")
def submit_discovery(game_id: str, payload: SubmitDiscoveryRequest, background_tasks: BackgroundTasks,
                     reddit: RedditClient = Depends(get_reddit),
                     ai: GeminiClient = Depends(get_ai),
                     ledger: AlgorandLedger = Depends(get_ledger)):
    result = hunt.submit_discovery(game_id, payload.user_wallet, payload.submitted_permalink,
                                   reddit, ai, ledger)
    nft_request = result.pop("nft_request", None)
    if nft_request:
        background_tasks.add_task(
            nft.mint_achievement,
            nft_request["wallet_address"],
            nft_request["achievement_type"],
            nft_request["hunt_id"],
            nft_request["metadata"],
        )
    return result


@app.get("/hunts/{game_id}")
def get_hunt(game_id: str):
    session = sessions.get(game_id)
    if not session:
        raise HTTPException(404, "Game session not found")
    return sessions.public_view(session)


@app.post("/sessions/cleanup")
def cleanup_expired_sessions():
    return hunt.cleanup_expired_sessions()


# -------- Players --------

@app.get("/users/{wallet_address}/stats")
def get_user_stats(wallet_address: str):
    doc = user_stats.get(wallet_address)
    if not doc:
        raise HTTPException(404, "User not found")
    doc.pop("settled_game_ids", None)
    return doc


@app.get("/users/{wallet_address}/hunts")
def get_user_hunts(wallet_address: str, limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE), status: str = None):
    history = sessions.list_for_wallet(wallet_address, limit, status)
    return {"hunts": [sessions.public_view(s) for s in history], "count": len(history)}


@app.get("/users/{wallet_address}/nfts")
def get_user_nfts(wallet_address: str):
    nfts = nft.list_for_wallet(wallet_address)
    return {"nfts": nfts, "total_count": len(nfts)}


@app.get("/leaderboard")
def leaderboard(order_by: str = "total_reward_earned", limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE)):
    if order_by not in user_stats.LEADERBOARD_ORDERS:
        raise HTTPException(400, f"order_by must be one of {', '.join(user_stats.LEADERBOARD_ORDERS)}")
    board = user_stats.leaderboard(order_by, limit)
    return {"leaderboard": board, "count": len(board), "order_by": order_by}


# -------- Schema Info --------
@app.get("/schema")
def schema_info():
    # Expose schema names for admin tools
    return {
        "collections": [sessions.COLLECTION, user_stats.COLLECTION, nft.COLLECTION]
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
