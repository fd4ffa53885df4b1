import random

import pytest

import config
from conftest import FakeReddit, make_post
from errors import NoSuitablePostFound
from selector import is_suitable, select_suitable_post


@pytest.mark.parametrize("num_comments,stickied,expected", [
    (0, False, False),
    (1, False, True),
    (20, False, True),
    (21, False, False),
    (5, True, False),
])
def test_is_suitable(num_comments, stickied, expected):
    assert is_suitable(make_post(num_comments=num_comments, stickied=stickied)) is expected


def test_returns_a_suitable_post_from_the_allow_list():
    reddit = FakeReddit(posts=[make_post("big", num_comments=500), make_post("ok", num_comments=7)])
    sleeps = []

    subreddit, post = select_suitable_post(reddit, rng=random.Random(1), sleep=sleeps.append)

    assert subreddit in config.HUNT_SUBREDDITS
    assert post.id == "ok"
    assert sleeps == []


def test_exhaustion_after_five_attempts_with_delays():
    reddit = FakeReddit(posts=[make_post(num_comments=300), make_post(num_comments=0),
                               make_post(num_comments=4, stickied=True)])
    sleeps = []

    with pytest.raises(NoSuitablePostFound):
        select_suitable_post(reddit, rng=random.Random(7), sleep=sleeps.append)

    assert len(reddit.listing_calls) == 5
    assert all(s in config.HUNT_SUBREDDITS for s in reddit.listing_calls)
    assert sleeps == [config.SELECTOR_RETRY_DELAY_SECONDS] * 4


def test_upstream_errors_count_as_empty_attempts():
    reddit = FakeReddit()
    reddit.fail_listing = True

    with pytest.raises(NoSuitablePostFound):
        select_suitable_post(reddit, rng=random.Random(3), sleep=lambda s: None)

    assert len(reddit.listing_calls) == 5


def test_recovers_on_a_later_attempt():
    class FlakyReddit(FakeReddit):
        def list_hot_posts(self, subreddit, limit=25):
            self.listing_calls.append(subreddit)
            if len(self.listing_calls) < 3:
                return [make_post(num_comments=999)]
            return [make_post("late", num_comments=3)]

    reddit = FlakyReddit()
    _, post = select_suitable_post(reddit, rng=random.Random(0), sleep=lambda s: None)
    assert post.id == "late"
    assert len(reddit.listing_calls) == 3
