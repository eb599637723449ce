"""Unit tests for social/store.py -- stories, likes, comments and shares.

Covers:
- public feed excludes private and archived stories and carries author + counts
- list_user_stories includes private and archived stories
- add_like is idempotent per (user, story); like/unlike restores the count
- comments list oldest first with the commenter's handle
- deleting a story cascades to its likes, comments and shares
- share tokens are 64 hex chars and resolvable
"""

from __future__ import annotations

import pytest

from auth.models import User
from auth.store import UserStore
from social.models import Comment, Story
from social.store import SocialStore


@pytest.fixture
def people(user_store: UserStore) -> tuple[int, int]:
    alice = user_store.create_user(User(username="alice", display_name="Alice", avatar_bg_color="#FF5733"))
    bob = user_store.create_user(User(username="bob"))
    return alice, bob


class TestStories:
    def test_feed_filters_and_joins(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        public_id = social_store.create_story(Story(user_id=alice, content="hello"))
        social_store.create_story(Story(user_id=alice, content="secret", visibility="private"))
        archived_id = social_store.create_story(Story(user_id=bob, content="old news"))
        social_store.update_story(archived_id, archived=True)

        page, total = social_store.list_public_feed(limit=20, offset=0)
        assert total == 1
        assert [s.id for s in page] == [public_id]
        story = page[0]
        assert story.username == "alice"
        assert story.display_name == "Alice"
        assert story.avatar_bg_color == "#FF5733"
        assert story.like_count == 0
        assert story.comment_count == 0

    def test_feed_is_newest_first_and_paginates(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, _bob = people
        ids = [social_store.create_story(Story(user_id=alice, content=f"post {i}")) for i in range(5)]
        page, total = social_store.list_public_feed(limit=2, offset=1)
        assert total == 5
        assert [s.id for s in page] == [ids[3], ids[2]]

    def test_user_stories_include_private_and_archived(
        self, social_store: SocialStore, people: tuple[int, int]
    ) -> None:
        alice, _bob = people
        social_store.create_story(Story(user_id=alice, content="a"))
        private_id = social_store.create_story(Story(user_id=alice, content="b", visibility="private"))
        social_store.update_story(private_id, archived=True)
        stories = social_store.list_user_stories(alice)
        assert len(stories) == 2
        assert any(s.archived and s.visibility == "private" for s in stories)

    def test_update_missing_story(self, social_store: SocialStore) -> None:
        assert not social_store.update_story(12345, visibility="private")


class TestLikes:
    def test_like_twice_counts_once(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        assert social_store.add_like(bob, story_id)
        assert not social_store.add_like(bob, story_id)
        assert social_store.count_likes(story_id) == 1
        assert social_store.has_liked(bob, story_id)

    def test_unlike_restores_count(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        before = social_store.count_likes(story_id)
        social_store.add_like(bob, story_id)
        assert social_store.remove_like(bob, story_id)
        assert social_store.count_likes(story_id) == before
        assert not social_store.has_liked(bob, story_id)
        assert not social_store.remove_like(bob, story_id)

    def test_feed_counts_reflect_likes_and_comments(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        social_store.add_like(alice, story_id)
        social_store.add_like(bob, story_id)
        social_store.add_comment(Comment(user_id=bob, story_id=story_id, content="nice"))
        story = social_store.get_story(story_id)
        assert story.like_count == 2
        assert story.comment_count == 1


class TestComments:
    def test_comments_oldest_first_with_username(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        first = social_store.add_comment(Comment(user_id=bob, story_id=story_id, content="first"))
        second = social_store.add_comment(Comment(user_id=alice, story_id=story_id, content="second"))
        comments = social_store.list_comments(story_id)
        assert [c.id for c in comments] == [first, second]
        assert [c.username for c in comments] == ["bob", "alice"]
        assert social_store.count_comments(story_id) == 2


class TestDeletionAndShares:
    def test_delete_cascades(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        social_store.add_like(bob, story_id)
        social_store.add_comment(Comment(user_id=bob, story_id=story_id, content="hi"))
        share = social_store.create_share(story_id, "2999-01-01T00:00:00+00:00")

        assert social_store.delete_story(story_id)
        assert social_store.get_story(story_id) is None
        assert social_store.count_likes(story_id) == 0
        assert social_store.count_comments(story_id) == 0
        assert social_store.get_share(share.token) is None

    def test_share_token_shape(self, social_store: SocialStore, people: tuple[int, int]) -> None:
        alice, _bob = people
        story_id = social_store.create_story(Story(user_id=alice, content="hello"))
        share = social_store.create_share(story_id, "2999-01-01T00:00:00+00:00")
        assert len(share.token) == 64
        int(share.token, 16)
        resolved = social_store.get_share(share.token)
        assert resolved.story_id == story_id
        assert resolved.expires_at == "2999-01-01T00:00:00+00:00"
