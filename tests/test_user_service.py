"""User service: uniqueness, lookups, updates, feature grants and bans."""

import pytest

from tuitter.db.session import transaction
from tuitter.errors import NotFoundError, UnauthorizedError, UnprocessableEntityError, ValidationError
from tuitter.services import user_service
from tuitter.services.authorization import DEFAULT_USER_FEATURES
from tuitter.services.password import compare_passwords


class TestCreate:

    @pytest.mark.asyncio
    async def test_defaults_and_hashing(self, make_user):
        user = await make_user("alice", password="s3cret-pass")

        assert user.features == list(DEFAULT_USER_FEATURES)
        assert user.password != "s3cret-pass"
        await compare_passwords("s3cret-pass", user.password)
        with pytest.raises(UnauthorizedError):
            await compare_passwords("wrong-pass", user.password)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("tag", "ALICE"),
        ("username", "Alice NAME"),
        ("email", "Alice@Example.com"),
    ])
    async def test_unique_fields_are_case_insensitive(self, session_factory, make_user, field, value):
        await make_user("alice")
        data = {"tag": "bob", "username": "bob name", "email": "bob@example.com", "password": "12345678"}
        data[field] = value

        with pytest.raises(ValidationError) as exc_info:
            async with transaction(session_factory) as db:
                await user_service.create(db, data)
        assert exc_info.value.key == field


class TestFind:

    @pytest.mark.asyncio
    async def test_find_is_case_insensitive(self, session_factory, make_user):
        user = await make_user("alice")
        async with session_factory() as db:
            assert (await user_service.find_by_tag(db, "ALICE")).id == user.id
            assert (await user_service.find_by_email(db, "ALICE@example.com")).id == user.id
            assert (await user_service.find_by_username(db, "alice NAME")).id == user.id
            assert (await user_service.find_by_id(db, user.id)).tag == "alice"

    @pytest.mark.asyncio
    async def test_missing_user(self, session_factory):
        async with session_factory() as db:
            with pytest.raises(NotFoundError) as exc_info:
                await user_service.find_by_tag(db, "nobody")
        assert exc_info.value.key == "tag"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_update_rechecks_uniqueness(self, session_factory, make_user):
        alice = await make_user("alice")
        await make_user("bob")

        with pytest.raises(ValidationError) as exc_info:
            async with transaction(session_factory) as db:
                target = await user_service.find_by_id(db, alice.id)
                await user_service.update(db, target, {"tag": "Bob"})
        assert exc_info.value.key == "tag"

    @pytest.mark.asyncio
    async def test_case_change_of_own_tag_is_allowed(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            target = await user_service.find_by_id(db, alice.id)
            updated = await user_service.update(db, target, {"tag": "Alice", "description": "hi"})
        assert updated.tag == "Alice"
        assert updated.description == "hi"

    @pytest.mark.asyncio
    async def test_password_is_rehashed(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            target = await user_service.find_by_id(db, alice.id)
            updated = await user_service.update(db, target, {"password": "brand-new-pass"})
        await compare_passwords("brand-new-pass", updated.password)


class TestFeatures:

    @pytest.mark.asyncio
    async def test_add_keeps_order_and_skips_duplicates(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            target = await user_service.find_by_id(db, alice.id)
            updated = await user_service.add_features(db, target, ["ban:user", "read:tuit"])
        assert updated.features == list(DEFAULT_USER_FEATURES) + ["ban:user"]

    @pytest.mark.asyncio
    async def test_remove_some_or_all(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            target = await user_service.find_by_id(db, alice.id)
            updated = await user_service.remove_features(db, target, ["create:tuit"])
            assert "create:tuit" not in updated.features
            assert "read:tuit" in updated.features
            emptied = await user_service.remove_features(db, target)
        assert emptied.features == []


class TestBan:

    @pytest.mark.asyncio
    async def test_nuke_replaces_features(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            target = await user_service.find_by_id(db, alice.id)
            banned = await user_service.ban(db, target, "nuke")
        assert banned.features == ["nuked"]

    @pytest.mark.asyncio
    async def test_nuking_twice_is_rejected(self, session_factory, make_user):
        alice = await make_user("alice")
        async with transaction(session_factory) as db:
            await user_service.ban(db, await user_service.find_by_id(db, alice.id), "nuke")

        with pytest.raises(UnprocessableEntityError):
            async with transaction(session_factory) as db:
                await user_service.ban(db, await user_service.find_by_id(db, alice.id), "nuke")

    @pytest.mark.asyncio
    async def test_nuke_hooks_run_in_the_transaction(self, session_factory, make_user, monkeypatch):
        alice = await make_user("alice")
        seen = []

        async def record(db, user):
            seen.append(user.id)

        monkeypatch.setattr(user_service, "nuke_hooks", [record])
        async with transaction(session_factory) as db:
            await user_service.ban(db, await user_service.find_by_id(db, alice.id), "nuke")
        assert seen == [alice.id]
