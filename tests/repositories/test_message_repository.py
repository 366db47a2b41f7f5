"""MessageRepository: history, read/delivered edges and reactions."""

from datetime import datetime, timedelta, timezone

import pytest

from blverse.models.message import MessageReaction
from blverse.repositories.conversation_repository import ConversationRepository
from blverse.repositories.message_repository import MessageRepository


@pytest.fixture
def conversation(db, alice, bob):
    conversation, _ = ConversationRepository(db).get_or_create(alice.id, bob.id)
    db.commit()
    return conversation


def _send(db, conversation, sender, content, at=None):
    repo = MessageRepository(db)
    message = repo.create_message(
        conversation_id=conversation.id, sender_id=sender.id, type="text", content=content
    )
    if at is not None:
        message.created_at = at
    db.commit()
    return message


class TestReadState:
    def test_sender_is_first_reader(self, db, conversation, alice):
        message = _send(db, conversation, alice, "hi")
        assert MessageRepository(db).get_fresh(message.id).read_by == [alice.id]

    def test_mark_read_only_grows(self, db, conversation, alice, bob):
        repo = MessageRepository(db)
        first = _send(db, conversation, alice, "one")

        modified, ids = repo.mark_read(conversation.id, bob.id)
        db.commit()
        assert (modified, ids) == (1, [first.id])

        second = _send(db, conversation, alice, "two")
        modified, ids = repo.mark_read(conversation.id, bob.id)
        db.commit()
        assert modified == 1
        assert ids == [first.id, second.id]

        # Repeating is a no-op and still reports the full set
        modified, ids = repo.mark_read(conversation.id, bob.id)
        assert modified == 0
        assert ids == [first.id, second.id]
        assert set(repo.get_fresh(first.id).read_by) == {alice.id, bob.id}

    def test_own_messages_are_not_reported(self, db, conversation, alice, bob):
        _send(db, conversation, bob, "from bob")
        modified, ids = MessageRepository(db).mark_read(conversation.id, bob.id)
        assert (modified, ids) == (0, [])

    def test_unread_count(self, db, conversation, alice, bob):
        repo = MessageRepository(db)
        _send(db, conversation, alice, "one")
        _send(db, conversation, alice, "two")

        assert repo.unread_count(conversation.id, bob.id) == 2
        assert repo.unread_count(conversation.id, alice.id) == 0

        repo.mark_read(conversation.id, bob.id)
        db.commit()
        assert repo.unread_count(conversation.id, bob.id) == 0

    def test_mark_delivered_is_independent_of_read(self, db, conversation, alice, bob):
        repo = MessageRepository(db)
        message = _send(db, conversation, alice, "one")

        modified, ids = repo.mark_delivered(conversation.id, bob.id)
        db.commit()

        fresh = repo.get_fresh(message.id)
        assert (modified, ids) == (1, [message.id])
        assert fresh.delivered_by == [bob.id]
        assert fresh.read_by == [alice.id]


class TestReactions:
    def test_one_reaction_per_user(self, db, conversation, alice, bob):
        repo = MessageRepository(db)
        message = _send(db, conversation, alice, "hi")

        repo.set_reaction(message.id, bob.id, "👍")
        repo.set_reaction(message.id, bob.id, "❤️")
        db.commit()

        reactions = db.query(MessageReaction).filter_by(message_id=message.id).all()
        assert [(r.user_id, r.emoji) for r in reactions] == [(bob.id, "❤️")]

    def test_remove_reaction_is_idempotent(self, db, conversation, alice, bob):
        repo = MessageRepository(db)
        message = _send(db, conversation, alice, "hi")
        repo.set_reaction(message.id, bob.id, "👍")
        db.commit()

        assert repo.remove_reaction(message.id, bob.id) is True
        assert repo.remove_reaction(message.id, bob.id) is False


class TestHistory:
    def test_pages_backwards_and_returns_oldest_first(self, db, conversation, alice):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        messages = [
            _send(db, conversation, alice, f"m{i}", at=base + timedelta(minutes=i)) for i in range(5)
        ]
        repo = MessageRepository(db)

        page = repo.get_history(conversation.id, limit=2)
        assert [m.content for m in page] == ["m3", "m4"]

        older = repo.get_history(conversation.id, limit=2, before=messages[3].created_at)
        assert [m.content for m in older] == ["m1", "m2"]

    def test_search_is_literal_and_case_insensitive(self, db, conversation, alice):
        _send(db, conversation, alice, "Half price: 50% off")
        _send(db, conversation, alice, "nothing here")
        repo = MessageRepository(db)

        assert [m.content for m in repo.search(conversation.id, "50%", 10)] == ["Half price: 50% off"]
        assert [m.content for m in repo.search(conversation.id, "HALF", 10)] == ["Half price: 50% off"]
        assert repo.search(conversation.id, "%", 10)[0].content == "Half price: 50% off"
