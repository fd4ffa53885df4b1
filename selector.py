"""Pick the Reddit post a hunt is built on."""

import logging
import random
import time
from typing import Callable, List, Tuple

import config
from errors import NoSuitablePostFound, UpstreamUnavailable
from reddit_client import RedditClient
from schemas import RedditPost

logger = logging.getLogger(__name__)


def is_suitable(post: RedditPost) -> bool:
    """Few enough comments for the AI to read them all, but not a dead thread."""
    return (
        config.MIN_POST_COMMENTS <= post.num_comments <= config.MAX_POST_COMMENTS
        and not post.stickied
    )


def select_suitable_post(reddit: RedditClient,
                         rng: random.Random = None,
                         sleep: Callable[[float], None] = time.sleep,
                         subreddits: List[str] = None,
                         max_attempts: int = None) -> Tuple[str, RedditPost]:
    """Return (subreddit, post), trying a fresh random subreddit on each attempt."""
    rng = rng or random.Random()
    subreddits = subreddits or config.HUNT_SUBREDDITS
    max_attempts = max_attempts or config.SELECTOR_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        subreddit = rng.choice(subreddits)
        logger.info(f"Attempt {attempt}: Searching r/{subreddit}")
        try:
            posts = reddit.list_hot_posts(subreddit, limit=config.HOT_POST_LIMIT)
        except UpstreamUnavailable as exc:
            logger.warning(f"Error fetching posts from r/{subreddit}: {exc}")
            posts = []

        candidates = [p for p in posts if is_suitable(p)]
        if candidates:
            return subreddit, rng.choice(candidates)

        logger.info(f"No suitable posts found in r/{subreddit}, trying another subreddit...")
        if attempt < max_attempts:
            sleep(config.SELECTOR_RETRY_DELAY_SECONDS)

    raise NoSuitablePostFound(f"No suitable posts found after {max_attempts} attempts")
