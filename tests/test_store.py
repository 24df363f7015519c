from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from utils.error_handler import DuplicateEmail, NotFound, StoreError, ValidationError


def test_create_user_is_retrievable(store):
    user_id = store.create_user('alice', 'alice@example.com', 'secret1')

    user = store.get_user(user_id)
    assert user.id == user_id
    assert user.username == 'alice'
    assert user.email == 'alice@example.com'
    assert user.bio is None
    assert user.profile_url is None
    assert user.created_at


def test_password_is_not_stored_in_plain_text(store, db_manager):
    store.create_user('alice', 'alice@example.com', 'secret1')

    row = db_manager.execute_query("SELECT password FROM users WHERE email = ?",
                                   ('alice@example.com',), fetch_one=True)
    assert row['password'] != 'secret1'
    assert row['password'].startswith('$2')


def test_duplicate_email_creates_no_row(store, db_manager):
    store.create_user('alice', 'alice@example.com', 'secret1')

    with pytest.raises(DuplicateEmail):
        store.create_user('alice2', 'alice@example.com', 'other')

    count = db_manager.execute_query("SELECT COUNT(*) AS n FROM users", fetch_one=True)
    assert count['n'] == 1


def test_authenticate_matches_only_exact_credentials(store):
    user_id = store.create_user('alice', 'alice@example.com', 'secret1')

    user = store.authenticate('alice@example.com', 'secret1')
    assert user is not None
    assert user.id == user_id

    assert store.authenticate('alice@example.com', 'wrong') is None
    assert store.authenticate('nobody@example.com', 'secret1') is None
    assert store.authenticate('alice@example.com', 'SECRET1') is None


def test_get_user_missing_raises_not_found(store):
    with pytest.raises(NotFound):
        store.get_user(999)


def test_update_bio_and_photo(store):
    user_id = store.create_user('alice', 'alice@example.com', 'secret1')

    store.update_bio(user_id, 'hello there')
    store.update_profile_photo(user_id, 'https://ik.example.com/demo/me.png')

    user = store.get_user(user_id)
    assert user.bio == 'hello there'
    assert user.profile_url == 'https://ik.example.com/demo/me.png'


def test_update_bio_missing_user(store):
    with pytest.raises(NotFound):
        store.update_bio(42, 'bio')


def test_feed_is_newest_first_regardless_of_insertion_order(store):
    alice = store.create_user('alice', 'alice@example.com', 'pw12')
    bob = store.create_user('bob', 'bob@example.com', 'pw12')
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    store.create_post(alice, 'middle', created_at=base + timedelta(hours=1))
    store.create_post(bob, 'oldest', created_at=base)
    store.create_post(alice, 'newest', created_at=base + timedelta(days=2))

    feed = store.list_feed()
    assert [p.content for p in feed] == ['newest', 'middle', 'oldest']
    assert [p.username for p in feed] == ['alice', 'alice', 'bob']


def test_posts_by_user_only_returns_that_user(store):
    alice = store.create_user('alice', 'alice@example.com', 'pw12')
    bob = store.create_user('bob', 'bob@example.com', 'pw12')
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    store.create_post(alice, 'first', created_at=base)
    store.create_post(bob, 'not mine', created_at=base + timedelta(minutes=1))
    store.create_post(alice, 'second', created_at=base + timedelta(minutes=2))

    posts = store.list_posts_by_user(alice)
    assert [p.content for p in posts] == ['second', 'first']


def test_post_lifecycle(store):
    user_id = store.create_user('alice', 'alice@example.com', 'pw12')

    post_id = store.create_post(user_id, 'hello world', 'https://ik.example.com/demo/a.png')
    post = store.get_post(post_id)
    assert post.content == 'hello world'
    assert post.url == 'https://ik.example.com/demo/a.png'
    assert post.username == 'alice'
    assert post.email == 'alice@example.com'
    assert post.joined

    store.update_post_content(post_id, 'edited')
    assert store.get_post(post_id).content == 'edited'

    store.delete_post(post_id)
    with pytest.raises(NotFound):
        store.get_post(post_id)


def test_create_post_uses_supplied_id(store):
    user_id = store.create_user('alice', 'alice@example.com', 'pw12')

    assert store.create_post(user_id, 'hi', post_id='abc123') == 'abc123'
    assert store.get_post('abc123').content == 'hi'


def test_create_post_for_missing_user(store):
    with pytest.raises(NotFound):
        store.create_post(123, 'orphan')


def test_update_and_delete_missing_post(store):
    with pytest.raises(NotFound):
        store.update_post_content('missing', 'x')
    with pytest.raises(NotFound):
        store.delete_post('missing')


def test_pool_exhaustion_raises_store_error(db_manager):
    with db_manager.get_connection():
        with db_manager.get_connection():
            with pytest.raises(StoreError):
                with db_manager.get_connection():
                    pass


def test_connection_is_reused_after_release(db_manager):
    with db_manager.get_connection() as first:
        pass
    with db_manager.get_connection() as second:
        assert second is first


def test_health_check(db_manager):
    assert db_manager.health_check()['status'] == 'healthy'

    db_manager.close()
    assert db_manager.health_check()['status'] == 'unhealthy'


def test_overlong_password_is_rejected_before_hashing(store, db_manager):
    with patch('database.store.bcrypt.hashpw') as hashpw:
        with pytest.raises(ValidationError):
            store.create_user('dave', 'dave@example.com', 'p' * 80)
        hashpw.assert_not_called()

    assert db_manager.execute_query("SELECT COUNT(*) AS n FROM users", fetch_one=True)['n'] == 0


def test_authenticate_with_overlong_password_is_no_match(store):
    store.create_user('alice', 'alice@example.com', 'secret1')

    assert store.authenticate('alice@example.com', 'p' * 80) is None
    assert store.authenticate('alice@example.com', 'secret1') is not None


def test_failed_rollback_keeps_original_error_and_drops_connection(db_manager):
    with pytest.raises(ValueError, match='original'):
        with db_manager.get_connection() as conn:
            conn.close()
            raise ValueError('original')

    assert db_manager.health_check()['status'] == 'healthy'
    with db_manager.get_connection() as fresh:
        assert fresh is not conn


def test_rollback_error_is_not_raised_from_transaction(db_manager):
    with patch.object(db_manager, '_safe_rollback', return_value=False) as rollback:
        with pytest.raises(ValueError, match='original'):
            with db_manager.get_transaction():
                raise ValueError('original')
    assert rollback.call_count == 2
    assert db_manager.health_check()['status'] == 'healthy'
