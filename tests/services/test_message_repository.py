"""Tests for MessageRepository: history pages, the square feed and admin listing."""

import pytest
from sqlalchemy.orm import Session

from agentsquare.db.models import Message
from agentsquare.services.message_repository import MAX_PAGE_LIMIT, MessageRepository, clamp_limit


@pytest.fixture
def conversation(test_db: Session, make_agent, make_user):
    """An agent, a user and a repository over the test session."""
    agent = make_agent()
    user = make_user()
    return agent, user, MessageRepository(test_db)


def _append_turns(repo: MessageRepository, agent_id: str, user_id: str, count: int) -> list[str]:
    ids = []
    for i in range(count):
        turn = repo.append_user_turn(
            user_id=user_id,
            agent_id=agent_id,
            content=f"request {i}",
            reference_images=[],
            publish_to_square=False,
        )
        ids.append(turn.id)
    return ids


class TestAppend:
    """User and agent turns are tagged explicitly."""

    def test_user_turn_with_images_is_image_type(self, conversation):
        """Reference images make the user turn an image turn."""
        agent, user, repo = conversation
        turn = repo.append_user_turn(
            user_id=user.id,
            agent_id=agent.id,
            content="restyle this",
            reference_images=["https://a.test/1.png"],
            publish_to_square=True,
        )
        assert turn.type == "image"
        assert turn.sender_kind == "user"
        assert turn.reference_images == ["https://a.test/1.png"]

    def test_failure_turn_is_text_agent_turn(self, conversation):
        """An agent turn without image is a text turn."""
        agent, user, repo = conversation
        turn = repo.append_agent_turn(
            user_id=user.id,
            agent_id=agent.id,
            content="⚠️ Generation failed: boom",
            image_data=None,
            generation_time=10,
            user_message_id=None,
            publish_to_square=False,
        )
        assert turn.type == "text"
        assert turn.sender_kind == "agent"
        assert turn.reference_images is None


class TestHistoryPagination:
    """Keyset pagination over one conversation."""

    def test_latest_page_is_ascending_with_cursor(self, conversation):
        """limit=N returns the N newest turns oldest-first; cursor is the oldest id."""
        agent, user, repo = conversation
        ids = _append_turns(repo, agent.id, user.id, 7)

        page = repo.list(agent.id, user.id, limit=3)

        assert [m.id for m in page.items] == ids[4:7]
        assert page.has_more is True
        assert page.next_cursor == ids[4]

    def test_walking_back_reaches_the_start(self, conversation):
        """Following next_cursor eventually returns has_more False."""
        agent, user, repo = conversation
        ids = _append_turns(repo, agent.id, user.id, 5)

        first = repo.list(agent.id, user.id, limit=3)
        second = repo.list(agent.id, user.id, cursor=first.next_cursor, limit=3)

        assert [m.id for m in second.items] == ids[0:2]
        assert second.has_more is False
        assert second.next_cursor is None

    def test_exact_fit_has_no_more(self, conversation):
        """Exactly N turns gives has_more False."""
        agent, user, repo = conversation
        _append_turns(repo, agent.id, user.id, 3)
        page = repo.list(agent.id, user.id, limit=3)
        assert len(page.items) == 3
        assert page.has_more is False
        assert page.next_cursor is None

    def test_scoped_to_user(self, conversation, make_user):
        """Another user's turns with the same agent are not returned."""
        agent, user, repo = conversation
        other = make_user(ip="10.0.0.2")
        _append_turns(repo, agent.id, other.id, 2)
        mine = _append_turns(repo, agent.id, user.id, 1)
        page = repo.list(agent.id, user.id)
        assert [m.id for m in page.items] == mine

    def test_limit_is_clamped(self):
        """Oversized limits are capped and invalid ones use the default."""
        assert clamp_limit(1000) == MAX_PAGE_LIMIT
        assert clamp_limit(0) == 50
        assert clamp_limit(None) == 50


class TestFeed:
    """The square shows only completed, published, image-bearing turns."""

    def _agent_turn(self, repo, agent, user, *, image, gen_time, publish, origin=None):
        return repo.append_agent_turn(
            user_id=user.id,
            agent_id=agent.id,
            content="Presenting: a cat",
            image_data=image,
            generation_time=gen_time,
            user_message_id=origin,
            publish_to_square=publish,
        )

    def test_excludes_incomplete_or_unpublished(self, conversation, test_db: Session):
        """Turns missing image or generation time never appear, whatever the flag."""
        agent, user, repo = conversation
        good = self._agent_turn(repo, agent, user, image="https://x.test/a.png", gen_time=900, publish=True)
        self._agent_turn(repo, agent, user, image=None, gen_time=900, publish=True)
        self._agent_turn(repo, agent, user, image="", gen_time=900, publish=True)
        self._agent_turn(repo, agent, user, image="https://x.test/b.png", gen_time=900, publish=False)
        no_time = self._agent_turn(repo, agent, user, image="https://x.test/c.png", gen_time=900, publish=True)
        no_time.generation_time = None
        test_db.flush()

        page = repo.list_feed()

        assert [e.message.id for e in page.items] == [good.id]

    def test_joins_originating_request(self, conversation):
        """Each entry carries the user turn that produced it."""
        agent, user, repo = conversation
        request = repo.append_user_turn(
            user_id=user.id,
            agent_id=agent.id,
            content="a cat in a hat",
            reference_images=["https://ref.test/1.png"],
            publish_to_square=True,
        )
        self._agent_turn(
            repo, agent, user, image="https://x.test/a.png", gen_time=5, publish=True, origin=request.id
        )

        entry = repo.list_feed().items[0]

        assert entry.request is not None
        assert entry.request.content == "a cat in a hat"
        assert entry.request.reference_images == ["https://ref.test/1.png"]

    def test_newest_first_with_cursor(self, conversation):
        """Feed pages run newest to oldest."""
        agent, user, repo = conversation
        ids = [
            self._agent_turn(repo, agent, user, image=f"https://x.test/{i}.png", gen_time=1, publish=True).id
            for i in range(3)
        ]
        page = repo.list_feed(limit=2)
        assert [e.message.id for e in page.items] == [ids[2], ids[1]]
        assert page.has_more is True
        rest = repo.list_feed(cursor=page.next_cursor, limit=2)
        assert [e.message.id for e in rest.items] == [ids[0]]


class TestAdminListing:
    """Offset pagination with filters."""

    def test_filters_and_total(self, conversation):
        """Keyword filter narrows items and total."""
        agent, user, repo = conversation
        _append_turns(repo, agent.id, user.id, 4)
        result = repo.list_admin(keyword="request 2")
        assert result.total == 1
        assert result.items[0].content == "request 2"

    def test_page_size_capped(self, conversation):
        """Page size never exceeds the admin maximum."""
        agent, user, repo = conversation
        result = repo.list_admin(page_size=500)
        assert result.page_size == 50

    def test_delete(self, conversation, test_db: Session):
        """Deleting returns False for unknown ids."""
        agent, user, repo = conversation
        ids = _append_turns(repo, agent.id, user.id, 1)
        assert repo.delete(ids[0]) is True
        assert repo.delete(ids[0]) is False
        assert test_db.query(Message).count() == 0
