"""
Tests for the record repository in guestbook.storage.

Tests cover:
- Message insert/update/delete including zero-row outcomes
- Newest-first ordering and filtered counts
- LIKE wildcard escaping in the name search
- Image insert/delete/listing
- Storage failures surfacing as RepositoryError
"""

import pytest

from guestbook import storage
from guestbook.errors import RepositoryError
from guestbook.models import Image, Message


class TestMessages:

    def test_insert_assigns_id(self, db):
        message = storage.insert_message(db, "Ana", "hello there, world")

        assert message.id is not None
        assert db.query(Message).count() == 1

    def test_update(self, db):
        message = storage.insert_message(db, "Ana", "hello there, world")

        affected = storage.update_message(db, message.id, "Ana Maria", "updated message body")

        assert affected == 1
        db.expire_all()
        stored = db.get(Message, message.id)
        assert stored.author_name == "Ana Maria"
        assert stored.body == "updated message body"

    def test_update_missing_id_affects_nothing(self, db):
        assert storage.update_message(db, 999, "Ana", "whatever message") == 0

    def test_delete(self, db):
        # Read the id up front: the bulk delete leaves the instance pointing at a gone row
        message_id = storage.insert_message(db, "Ana", "hello there, world").id

        assert storage.delete_message(db, message_id) == 1
        assert storage.delete_message(db, message_id) == 0
        assert db.query(Message).count() == 0

    @pytest.mark.parametrize("message_id", [2 ** 63, -(2 ** 63) - 1, 10 ** 30])
    def test_out_of_range_id_affects_nothing(self, db, message_id):
        storage.insert_message(db, "Ana", "hello there, world")

        assert storage.update_message(db, message_id, "Ana", "whatever message") == 0
        assert storage.delete_message(db, message_id) == 0
        assert db.query(Message).count() == 1

    def test_get_messages_newest_first(self, db):
        ids = [storage.insert_message(db, f"Name {c}", "some message body").id for c in "abcde"]

        messages, total = storage.get_messages(db, limit=10)

        assert total == 5
        assert [m.id for m in messages] == sorted(ids, reverse=True)

    def test_get_messages_limit_offset(self, db):
        for c in "abcdefg":
            storage.insert_message(db, f"Name {c}", "some message body")

        messages, total = storage.get_messages(db, limit=3, offset=3)

        assert total == 7
        assert [m.author_name for m in messages] == ["Name d", "Name c", "Name b"]

    def test_offset_past_total_is_empty(self, db):
        for c in "abc":
            storage.insert_message(db, f"Name {c}", "some message body")

        messages, total = storage.get_messages(db, limit=100, offset=10 ** 20)

        assert messages == []
        assert total == 3

    def test_search_case_insensitive(self, db):
        for name in ["Ana", "Mariana", "ANABEL", "Pedro"]:
            storage.insert_message(db, name, "some message body")

        messages, total = storage.get_messages(db, limit=10, search="ana")

        assert total == 3
        assert {m.author_name for m in messages} == {"Ana", "Mariana", "ANABEL"}

    def test_search_escapes_like_wildcards(self, db):
        storage.insert_message(db, "Ana_Maria", "some message body")
        storage.insert_message(db, "AnaXMaria", "some message body")

        _, underscore_total = storage.get_messages(db, limit=10, search="a_m")
        _, percent_total = storage.get_messages(db, limit=10, search="%")

        assert underscore_total == 1
        assert percent_total == 0


class TestImages:

    def test_insert_and_list_newest_first(self, db):
        first = storage.insert_image(db, "first.png")
        second = storage.insert_image(db, "second.jpg")

        images = storage.get_images(db)

        assert [i.id for i in images] == [second.id, first.id]

    def test_delete_by_filename(self, db):
        storage.insert_image(db, "gone.png")

        assert storage.delete_image(db, "gone.png") == 1
        assert storage.delete_image(db, "gone.png") == 0
        assert db.query(Image).count() == 0

    def test_duplicate_filename_raises_repository_error(self, db):
        storage.insert_image(db, "dup.png")

        with pytest.raises(RepositoryError) as exc_info:
            storage.insert_image(db, "dup.png")

        assert exc_info.value.state == "storage_error"
        # Session is usable again after the rollback
        assert len(storage.get_images(db)) == 1


class TestFailures:

    def test_missing_table_raises_repository_error(self, db):
        storage.Base.metadata.drop_all(bind=storage.engine)

        with pytest.raises(RepositoryError):
            storage.insert_message(db, "Ana", "hello there, world")

        with pytest.raises(RepositoryError):
            storage.get_messages(db, limit=5)


class TestHealth:

    def test_healthy_with_tables(self, db):
        assert storage.check_db_health() is True

    def test_unhealthy_without_tables(self, db):
        storage.Base.metadata.drop_all(bind=storage.engine)
        assert storage.check_db_health() is False
