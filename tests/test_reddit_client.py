from unittest.mock import MagicMock

import pytest
import requests

from errors import UpstreamUnavailable
from reddit_client import RedditClient, comment_id_from_permalink, flatten_comments


def _t1(cid, body, replies=None, author="someone"):
    data = {"id": cid, "author": author, "body": body, "score": 1, "permalink": f"/r/x/comments/p/s/{cid}/"}
    data["replies"] = {"kind": "Listing", "data": {"children": replies}} if replies else ""
    return {"kind": "t1", "data": data}


class TestFlattenComments:

    def test_depth_first_order(self):
        tree = [
            _t1("a", "first", replies=[_t1("a1", "reply to first", replies=[_t1("a1x", "deep")])]),
            _t1("b", "second"),
        ]
        assert [c.id for c in flatten_comments(tree)] == ["a", "a1", "a1x", "b"]

    def test_drops_deleted_and_more_stubs_but_keeps_their_replies(self):
        tree = [
            _t1("gone", "[deleted]", replies=[_t1("kept", "still here")]),
            _t1("blank", "   "),
            {"kind": "more", "data": {"children": ["zzz"]}},
            _t1("removed", "[removed]"),
        ]
        assert [c.id for c in flatten_comments(tree)] == ["kept"]

    def test_records_carry_author_body_score(self):
        [comment] = flatten_comments([_t1("a", "hello", author="alice")])
        assert comment.author == "alice"
        assert comment.body == "hello"
        assert comment.score == 1
        assert comment.permalink == "/r/x/comments/p/s/a/"


class TestPermalinkParsing:

    @pytest.mark.parametrize("permalink,expected", [
        ("/r/science/comments/abc123/some_title/def456/", "def456"),
        ("https://www.reddit.com/r/science/comments/abc123/some_title/def456/?context=3", "def456"),
        ("/r/science/comments/abc123/some_title/", None),
        ("not a permalink", None),
        ("", None),
    ])
    def test_comment_id(self, permalink, expected):
        assert comment_id_from_permalink(permalink) == expected


class TestRedditClient:

    def test_mock_mode_without_credentials(self):
        client = RedditClient()
        assert client.mock_mode
        assert client.get_access_token() == "mock_token"
        assert client.list_hot_posts("science")
        comments = client.get_post_comments("mock_post_1")
        assert comments[0].author == "ScienceExpert"

    def test_mock_comment_lookup_echoes_permalink(self):
        client = RedditClient()
        permalink = "/r/todayilearned/comments/mock_post_1/mock/comment_2/"
        comment = client.get_comment_by_permalink(permalink)
        assert comment.id == "comment_2"
        assert comment.permalink == permalink

    def test_unparseable_permalink_is_none(self):
        assert RedditClient().get_comment_by_permalink("https://example.com") is None

    def test_network_error_becomes_upstream_unavailable(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("boom")
        client = RedditClient("id", "secret", session=session)
        with pytest.raises(UpstreamUnavailable):
            client.list_hot_posts("science")

    def test_hot_posts_parsed_from_listing(self):
        session = MagicMock()
        token_resp = MagicMock()
        token_resp.json.return_value = {"access_token": "tok", "expires_in": 3600}
        session.post.return_value = token_resp
        listing = MagicMock()
        listing.json.return_value = {"data": {"children": [
            {"kind": "t3", "data": {"id": "p1", "title": "T", "num_comments": 4, "score": 10,
                                    "stickied": False, "extra_field": "ignored"}},
        ]}}
        session.get.return_value = listing
        client = RedditClient("id", "secret", session=session)

        posts = client.list_hot_posts("science", limit=25)

        assert [p.id for p in posts] == ["p1"]
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["params"]["limit"] == 25

    def test_token_is_reused(self):
        session = MagicMock()
        token_resp = MagicMock()
        token_resp.json.return_value = {"access_token": "tok", "expires_in": 3600}
        session.post.return_value = token_resp
        client = RedditClient("id", "secret", session=session)
        client.get_access_token()
        client.get_access_token()
        assert session.post.call_count == 1
