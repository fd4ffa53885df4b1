"""
Reddit adapter

Application-only OAuth against oauth.reddit.com. Without client credentials the
client serves fixed development posts and comments instead.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

import config
from errors import UpstreamUnavailable
from schemas import RedditComment, RedditPost

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
API_BASE = "https://oauth.reddit.com"

_PERMALINK_RE = re.compile(r"/comments/[^/]+/[^/]+/([^/?#]+)")
_REMOVED_BODIES = {"", "[deleted]", "[removed]"}


def _build_session(user_agent: str) -> requests.Session:
    """Create a requests.Session with retry adapter and custom User-Agent."""
    session = requests.Session()
    retry = Retry(
        total=2,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": user_agent})
    return session


def comment_id_from_permalink(permalink: str) -> Optional[str]:
    """Extract the comment id from a comment permalink or full comment URL."""
    match = _PERMALINK_RE.search(permalink or "")
    if not match:
        return None
    return match.group(1)


def flatten_comments(children: List[Dict[str, Any]]) -> List[RedditComment]:
    """Depth-first walk of a Reddit comment listing.

    Keeps only real comments (kind t1) with a body; "more" stubs and
    deleted/removed comments are dropped, their replies are still visited.
    """
    flattened: List[RedditComment] = []

    def visit(node: Dict[str, Any]):
        data = node.get("data") or {}
        if node.get("kind") == "t1" and (data.get("body") or "").strip() not in _REMOVED_BODIES:
            flattened.append(_to_comment(data))
        replies = data.get("replies")
        if isinstance(replies, dict):
            for child in (replies.get("data") or {}).get("children", []):
                visit(child)

    for child in children:
        visit(child)
    return flattened


def _to_comment(data: Dict[str, Any]) -> RedditComment:
    return RedditComment(
        id=data["id"],
        author=data.get("author") or "[unknown]",
        body=data["body"],
        score=data.get("score") or 0,
        created_utc=data.get("created_utc") or 0.0,
        permalink=data.get("permalink") or "",
    )


class RedditClient:
    """Narrow Reddit API: token, hot listing, comment tree, single comment."""

    def __init__(self, client_id: str = None, client_secret: str = None,
                 user_agent: str = config.REDDIT_USER_AGENT,
                 timeout: float = config.REDDIT_TIMEOUT_SECONDS,
                 session: requests.Session = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.session = session or _build_session(user_agent)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def mock_mode(self) -> bool:
        return not (self.client_id and self.client_secret)

    def get_access_token(self) -> str:
        if self.mock_mode:
            return "mock_token"
        if self._token and time.time() < self._token_expires_at:
            return self._token
        try:
            resp = self.session.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable(f"Reddit authentication failed: {exc}") from exc
        token = payload.get("access_token")
        if not token:
            raise UpstreamUnavailable("Reddit authentication returned no token")
        self._token = token
        # refresh a minute early
        self._token_expires_at = time.time() + max(0, payload.get("expires_in", 3600) - 60)
        return token

    def _get(self, path: str, params: dict) -> Any:
        token = self.get_access_token()
        try:
            resp = self.session.get(
                f"{API_BASE}{path}",
                params={**params, "raw_json": 1},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable(f"Reddit request {path} failed: {exc}") from exc

    def list_hot_posts(self, subreddit: str, limit: int = config.HOT_POST_LIMIT) -> List[RedditPost]:
        if self.mock_mode:
            return mock_posts()
        payload = self._get(f"/r/{subreddit}/hot", {"limit": limit})
        children = ((payload or {}).get("data") or {}).get("children", [])
        return [RedditPost.model_validate(child["data"]) for child in children if child.get("kind") == "t3"]

    def get_post_comments(self, post_id: str) -> List[RedditComment]:
        """Whole comment tree of a post, flattened depth-first."""
        if self.mock_mode:
            return mock_comments(post_id)
        payload = self._get(f"/comments/{post_id}", {"limit": 100})
        if not isinstance(payload, list) or len(payload) < 2:
            return []
        children = (payload[1].get("data") or {}).get("children", [])
        return flatten_comments(children)

    def get_comment_by_permalink(self, permalink: str) -> Optional[RedditComment]:
        comment_id = comment_id_from_permalink(permalink)
        if not comment_id:
            logger.warning(f"Invalid permalink format: {permalink}")
            return None
        if self.mock_mode:
            return RedditComment(
                id=comment_id,
                author="TestUser",
                body="This is a mock comment for testing purposes.",
                score=42,
                created_utc=time.time(),
                permalink=permalink,
            )
        payload = self._get("/api/info", {"id": f"t1_{comment_id}"})
        children = ((payload or {}).get("data") or {}).get("children", [])
        if not children:
            logger.warning(f"Comment not found: {comment_id}")
            return None
        data = children[0].get("data") or {}
        if (data.get("body") or "").strip() in _REMOVED_BODIES:
            return None
        return _to_comment(data)


# Development data served in mock mode

def mock_posts() -> List[RedditPost]:
    now = time.time()
    return [
        RedditPost(
            id="mock_post_1",
            title="TIL that octopuses have three hearts and blue blood",
            score=1247,
            num_comments=15,
            created_utc=now,
        ),
        RedditPost(
            id="mock_post_2",
            title="ELI5: Why do we get brain freeze when eating cold things?",
            selftext="I never understood this phenomenon...",
            score=892,
            num_comments=8,
            is_self=True,
            created_utc=now,
        ),
    ]


def mock_comments(post_id: str) -> List[RedditComment]:
    now = time.time()
    return [
        RedditComment(
            id="comment_1",
            author="ScienceExpert",
            body="Octopuses actually have three hearts because two pump blood to the gills while the "
                 "third pumps blood to the rest of the body. Their blue blood comes from copper-based "
                 "hemocyanin instead of iron-based hemoglobin.",
            score=156,
            created_utc=now,
            permalink=f"/r/todayilearned/comments/{post_id}/mock/comment_1/",
        ),
        RedditComment(
            id="comment_2",
            author="CuriousUser",
            body="That's fascinating! I had no idea about the copper-based blood.",
            score=23,
            created_utc=now,
            permalink=f"/r/todayilearned/comments/{post_id}/mock/comment_2/",
        ),
    ]
