"""
Test configuration and fixtures
"""
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import json

import mongomock
import pytest

import database
from errors import UpstreamUnavailable
from schemas import RedditComment, RedditPost


WINNING_PERMALINK = "/r/science/comments/abc123/octopus_hearts/c2/"


def make_post(post_id="abc123", num_comments=8, stickied=False, score=50, title="TIL about octopus hearts"):
    return RedditPost(id=post_id, title=title, score=score, num_comments=num_comments, stickied=stickied)


def make_comments(count=3, post_id="abc123") -> List[RedditComment]:
    bodies = [
        "Cool post!",
        "Octopuses pump blood with three hearts; two serve the gills and copper-based hemocyanin makes it blue.",
        "I love the ocean.",
    ]
    comments = []
    for i in range(count):
        comments.append(RedditComment(
            id=f"c{i + 1}",
            author=f"user{i + 1}",
            body=bodies[i % len(bodies)],
            score=10 * (i + 1),
            permalink=f"/r/science/comments/{post_id}/octopus_hearts/c{i + 1}/",
        ))
    return comments


def clue_json(index=1, clue="Seek the note about a creature whose circulation relies on a metal other than iron.",
              fact="Octopus blood is blue because of copper-based hemocyanin.", fenced=True):
    body = json.dumps({
        "fact": fact,
        "clue": clue,
        "winning_comment_id": f"c{index + 1}",
        "index": index,
        "reasoning": "Most educational comment.",
    })
    return f"```json\n{body}\n```" if fenced else body


def verdict_json(is_correct, confidence=0.8):
    return json.dumps({
        "isCorrect": is_correct,
        "confidence": confidence,
        "feedback": "Nice find!" if is_correct else "Not quite.",
        "reasoning": "Compared facts.",
        "factMatch": is_correct,
        "relevanceScore": confidence,
    })


class FakeReddit:
    """Scripted stand-in for RedditClient."""

    def __init__(self, posts: Optional[List[RedditPost]] = None, comments: Optional[List[RedditComment]] = None):
        self.posts = [make_post()] if posts is None else posts
        self.comments = make_comments() if comments is None else comments
        self.fail_listing = False
        self.fail_comment_lookup = False
        self.listing_calls: List[str] = []
        self.extra_comments: Dict[str, RedditComment] = {}

    def list_hot_posts(self, subreddit, limit=25):
        self.listing_calls.append(subreddit)
        if self.fail_listing:
            raise UpstreamUnavailable("reddit down")
        return list(self.posts)

    def get_post_comments(self, post_id):
        return list(self.comments)

    def get_comment_by_permalink(self, permalink):
        if self.fail_comment_lookup:
            raise UpstreamUnavailable("reddit down")
        for comment in self.comments:
            if comment.permalink == permalink:
                return comment
        return self.extra_comments.get(permalink)


class FakeAI:
    """Returns queued answers in order; an Exception in the queue is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: List[List[str]] = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def complete(self, parts, max_tokens=500, temperature=0.7):
        self.prompts.append(list(parts))
        if not self.responses:
            raise UpstreamUnavailable("no scripted AI response")
        answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeLedger:

    def __init__(self, fail=False):
        self.fail = fail
        self.payments = []

    def pay(self, to_address, amount, memo, idempotency_key=None):
        if self.fail:
            raise UpstreamUnavailable("algod unreachable")
        self.payments.append((to_address, amount, memo, idempotency_key))
        return f"TX{len(self.payments)}"


@pytest.fixture
def mongo(monkeypatch):
    """Fresh in-memory database behind the database helpers"""
    mock_db = mongomock.MongoClient()["mindminer_test"]
    monkeypatch.setattr(database, "db", mock_db)
    database.ensure_indexes()
    return mock_db

