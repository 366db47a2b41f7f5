"""ConversationRepository: one conversation per unordered user pair."""

from datetime import datetime, timezone

from blverse.models.conversation import Conversation, sorted_pair
from blverse.repositories.conversation_repository import ConversationRepository


class TestGetOrCreate:
    def test_is_symmetric(self, db, alice, bob):
        repo = ConversationRepository(db)

        first, created_first = repo.get_or_create(alice.id, bob.id)
        db.commit()
        second, created_second = repo.get_or_create(bob.id, alice.id)

        assert first.id == second.id
        assert (created_first, created_second) == (True, False)
        assert db.query(Conversation).count() == 1

    def test_pair_is_stored_sorted(self, db, alice, bob):
        conversation, _ = ConversationRepository(db).get_or_create(bob.id, alice.id)

        assert (conversation.participant_low, conversation.participant_high) == sorted_pair(
            alice.id, bob.id
        )
        assert set(conversation.participant_ids) == {alice.id, bob.id}
        assert conversation.other_participant(alice.id) == bob.id

    def test_losing_the_insert_race_returns_winner(self, db, alice, bob, monkeypatch):
        repo = ConversationRepository(db)
        winner, _ = repo.get_or_create(alice.id, bob.id)
        db.commit()

        # The first lookup misses, as if the other request had not committed yet
        real_find = repo.find_by_pair
        calls = {"n": 0}

        def find_after_race(a, b):
            calls["n"] += 1
            return None if calls["n"] == 1 else real_find(a, b)

        monkeypatch.setattr(repo, "find_by_pair", find_after_race)

        conversation, created = repo.get_or_create(bob.id, alice.id)

        assert created is False
        assert conversation.id == winner.id
        assert db.query(Conversation).count() == 1


def test_find_for_user_orders_by_recent_activity(db, alice, bob, carol):
    repo = ConversationRepository(db)
    with_bob, _ = repo.get_or_create(alice.id, bob.id)
    with_carol, _ = repo.get_or_create(alice.id, carol.id)
    db.commit()

    repo.update_last_message(with_bob, "latest", datetime(2030, 1, 1, tzinfo=timezone.utc), bob.id)
    db.commit()

    ids = [c.id for c in repo.find_for_user(alice.id)]
    assert ids == [with_bob.id, with_carol.id]
    assert [c.id for c in repo.find_for_user(bob.id)] == [with_bob.id]
