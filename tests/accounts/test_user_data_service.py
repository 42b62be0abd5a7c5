import contextlib
import copy
from datetime import datetime, timedelta, timezone
import logging
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from passlib.hash import bcrypt

from accounts.constants import ROLE_ADMIN, ROLE_USER, SYSTEM_ACCOUNT
from accounts.data_services.user_data_service import UserDataService
from accounts.exceptions import (EmailAlreadyUsedError,
                                 InvalidPasswordError,
                                 LoginAlreadyUsedError)
from accounts.models import Authority, PageRequest, User, UserDto


class PlainHasher:
    """ Reversible stand-in for bcrypt so the tests stay fast. """

    @staticmethod
    def hash(secret):
        return f"hashed:{secret}"

    @staticmethod
    def verify(secret, hashed):
        return hashed == f"hashed:{secret}"


class InMemoryUserStore:
    """
    Behaves like UserDataAccessLayer over a dict. Reads hand out copies,
    transactions roll the whole store back when the block raises.
    """

    def __init__(self):
        self.users: dict[int, User] = {}
        self.memberships: set[tuple[int, str]] = set()
        self._next_id = 1

    @contextlib.asynccontextmanager
    async def transaction(self):
        snapshot = (copy.deepcopy(self.users), set(self.memberships),
                    self._next_id)
        try:
            yield
        except BaseException:
            self.users, self.memberships, self._next_id = snapshot
            raise

    def _first(self, predicate):
        for user in self.users.values():
            if predicate(user):
                found = copy.deepcopy(user)
                found.authorities = set()
                return found
        return None

    def _with_authorities(self, user):
        if user is not None:
            user.authorities = {name for user_id, name in self.memberships
                                if user_id == user.id}
        return user

    async def find_one_by_id(self, user_id):
        return self._first(lambda user: user.id == user_id)

    async def find_one_by_login(self, login):
        return self._first(lambda user: user.login == login)

    async def find_one_by_email_ignore_case(self, email):
        return self._first(lambda user: user.email is not None and
                           user.email.lower() == email.lower())

    async def find_one_by_activation_key(self, key):
        return self._first(lambda user: user.activation_key == key)

    async def find_one_by_reset_key(self, key):
        return self._first(lambda user: user.reset_key == key)

    async def find_one_with_authorities_by_id(self, user_id):
        return self._with_authorities(await self.find_one_by_id(user_id))

    async def find_one_with_authorities_by_login(self, login):
        return self._with_authorities(await self.find_one_by_login(login))

    async def find_authorities_by_user_ids(self, user_ids):
        authorities = {}
        for user_id, name in self.memberships:
            if user_id in user_ids:
                authorities.setdefault(user_id, set()).add(name)
        return authorities

    async def find_all_not_activated_created_before(self, cutoff):
        return [copy.deepcopy(user) for user in self.users.values()
                if not user.activated and user.activation_key is not None
                and user.created_date < cutoff]

    async def find_all_by_login_not(self, page, login):
        users = sorted((user for user in self.users.values()
                        if user.login != login), key=lambda user: user.id)
        return [copy.deepcopy(user)
                for user in users[page.offset:page.offset + page.size]]

    async def count_all_by_login_not(self, login):
        return sum(1 for user in self.users.values() if user.login != login)

    async def save(self, user):
        if user.id is None:
            user.id = self._next_id
            self._next_id += 1
        stored = copy.deepcopy(user)
        stored.authorities = set()
        self.users[user.id] = stored
        return user

    async def delete(self, user):
        return 1 if self.users.pop(user.id, None) is not None else 0

    async def save_user_authority(self, user_id, authority_name):
        self.memberships.add((user_id, authority_name))

    async def delete_user_authorities_by_user_id(self, user_id):
        removed = {entry for entry in self.memberships if entry[0] == user_id}
        self.memberships -= removed
        return len(removed)

    async def delete_not_activated(self, user_id):
        user = self.users.get(user_id)
        if user is None or user.activated or user.activation_key is None:
            return 0
        await self.delete_user_authorities_by_user_id(user_id)
        del self.users[user_id]
        return 1


class InMemoryAuthorityStore:

    def __init__(self, names=(ROLE_ADMIN, ROLE_USER)):
        self.names = set(names)

    async def find_by_id(self, name):
        return Authority(name) if name in self.names else None

    async def find_all(self):
        return [Authority(name) for name in sorted(self.names)]


def _aware(**delta):
    return datetime.now(timezone.utc) - timedelta(**delta)


class UserDataServiceTestBase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.user_store = InMemoryUserStore()
        self.authority_store = InMemoryAuthorityStore()
        self.logger = logging.getLogger("test")
        self.service = UserDataService(self.user_store,
                                       self.authority_store,
                                       self.logger,
                                       password_hasher=PlainHasher)

    async def _register(self, login="alice", email="a@x.com",
                        password="secret123"):
        return await self.service.register_user(
            UserDto(login=login, email=email), password)

    async def _activated_user(self, login="alice", email="a@x.com",
                              password="secret123"):
        user = await self._register(login, email, password)
        return await self.service.activate_registration(user.activation_key)


class TestRegistration(UserDataServiceTestBase):

    async def test_register_then_activate(self):
        user = await self._register()

        self.assertEqual(user.login, "alice")
        self.assertFalse(user.activated)
        self.assertEqual(len(user.activation_key), 20)
        self.assertEqual(user.password_hash, "hashed:secret123")
        self.assertEqual(user.created_by, SYSTEM_ACCOUNT)
        self.assertEqual(self.user_store.memberships, {(user.id, ROLE_USER)})

        activated = await self.service.activate_registration(
            user.activation_key)
        self.assertTrue(activated.activated)
        self.assertIsNone(activated.activation_key)

        self.assertIsNone(
            await self.service.activate_registration(user.activation_key))

    async def test_register_lowercases_login_and_email(self):
        user = await self._register(login="Alice", email="A@X.com")

        self.assertEqual(user.login, "alice")
        self.assertEqual(user.email, "a@x.com")

    async def test_register_login_of_activated_user_conflicts(self):
        await self._activated_user()

        with self.assertRaises(LoginAlreadyUsedError) as ctx:
            await self._register(email="other@x.com")

        self.assertEqual(ctx.exception.login, "alice")
        self.assertEqual(str(ctx.exception), "Login name already used!")
        self.assertEqual(len(self.user_store.users), 1)

    async def test_register_email_of_activated_user_conflicts(self):
        await self._activated_user()

        with self.assertRaises(EmailAlreadyUsedError):
            await self._register(login="bob", email="A@x.com")

        self.assertEqual(len(self.user_store.users), 1)

    async def test_register_reclaims_unactivated_login(self):
        stale = await self._register()

        fresh = await self._register(email="new@x.com")

        self.assertNotEqual(stale.id, fresh.id)
        self.assertIsNone(await self.user_store.find_one_by_id(stale.id))
        self.assertNotIn((stale.id, ROLE_USER), self.user_store.memberships)
        self.assertEqual(len(self.user_store.users), 1)

    async def test_register_reclaims_unactivated_email(self):
        stale = await self._register(login="first")

        fresh = await self._register(login="second")

        self.assertIsNone(await self.user_store.find_one_by_id(stale.id))
        self.assertEqual(fresh.email, "a@x.com")

    async def test_register_without_user_role_creates_no_membership(self):
        self.authority_store.names = {ROLE_ADMIN}

        user = await self._register()

        self.assertEqual(user.authorities, set())
        self.assertEqual(self.user_store.memberships, set())

    async def test_register_failure_rolls_back(self):
        self.user_store.save_user_authority = AsyncMock(
            side_effect=RuntimeError("boom"))

        with self.assertRaises(RuntimeError):
            await self._register()

        self.assertEqual(self.user_store.users, {})


class TestCreateUser(UserDataServiceTestBase):

    async def test_create_user_is_activated_with_reset_key(self):
        dto = UserDto(login="Bob", email="B@x.com",
                      authorities={ROLE_ADMIN, "ROLE_UNKNOWN"})

        user = await self.service.create_user(dto, principal="admin")

        self.assertTrue(user.activated)
        self.assertEqual(user.login, "bob")
        self.assertEqual(user.lang_key, "en")
        self.assertEqual(len(user.reset_key), 20)
        self.assertIsNotNone(user.reset_date)
        self.assertTrue(user.password_hash.startswith("hashed:"))
        self.assertEqual(user.authorities, {ROLE_ADMIN})
        self.assertEqual(user.created_by, "admin")
        self.assertEqual(self.user_store.memberships, {(user.id, ROLE_ADMIN)})

    async def test_create_user_keeps_requested_language(self):
        user = await self.service.create_user(
            UserDto(login="bob", lang_key="fr"))

        self.assertEqual(user.lang_key, "fr")
        self.assertEqual(user.created_by, SYSTEM_ACCOUNT)


class TestPasswordReset(UserDataServiceTestBase):

    async def test_request_reset_for_unknown_email(self):
        self.assertIsNone(
            await self.service.request_password_reset("nobody@x.com"))

    async def test_request_reset_for_unactivated_user(self):
        await self._register()

        self.assertIsNone(await self.service.request_password_reset("a@x.com"))

    async def test_complete_reset_within_validity(self):
        await self._activated_user()
        user = await self.service.request_password_reset("A@x.com")
        self.assertEqual(len(user.reset_key), 20)

        reset = await self.service.complete_password_reset("newpass1",
                                                           user.reset_key)

        self.assertEqual(reset.password_hash, "hashed:newpass1")
        self.assertIsNone(reset.reset_key)
        self.assertIsNone(reset.reset_date)
        self.assertIsNone(
            await self.service.complete_password_reset("again123",
                                                       user.reset_key))

    async def test_complete_reset_after_validity(self):
        await self._activated_user()
        user = await self.service.request_password_reset("a@x.com")
        self.user_store.users[user.id].reset_date = _aware(hours=25)

        self.assertIsNone(
            await self.service.complete_password_reset("newpass1",
                                                       user.reset_key))
        self.assertEqual(self.user_store.users[user.id].password_hash,
                         "hashed:secret123")

    async def test_complete_reset_just_inside_validity(self):
        await self._activated_user()
        user = await self.service.request_password_reset("a@x.com")
        self.user_store.users[user.id].reset_date = _aware(hours=23)

        self.assertIsNotNone(
            await self.service.complete_password_reset("newpass1",
                                                       user.reset_key))

    async def test_complete_reset_unknown_key(self):
        self.assertIsNone(
            await self.service.complete_password_reset("newpass1", "nokey"))


class TestChangePassword(UserDataServiceTestBase):

    async def test_change_password_wrong_current(self):
        user = await self._activated_user()

        with self.assertRaises(InvalidPasswordError):
            await self.service.change_password("wrong", "newpass1", "alice")

        self.assertEqual(self.user_store.users[user.id].password_hash,
                         "hashed:secret123")

    async def test_change_password(self):
        user = await self._activated_user()

        await self.service.change_password("secret123", "newpass1", "alice")

        stored = self.user_store.users[user.id]
        self.assertEqual(stored.password_hash, "hashed:newpass1")
        self.assertEqual(stored.last_modified_by, "alice")

    async def test_change_password_without_principal(self):
        await self._activated_user()
        self.user_store.find_one_by_login = AsyncMock()

        await self.service.change_password("secret123", "newpass1", None)

        self.user_store.find_one_by_login.assert_not_awaited()

    async def test_change_password_with_bcrypt(self):
        service = UserDataService(self.user_store, self.authority_store,
                                  self.logger)
        user = await service.register_user(
            UserDto(login="alice", email="a@x.com"), "secret123")
        await service.activate_registration(user.activation_key)

        with self.assertRaises(InvalidPasswordError):
            await service.change_password("wrong", "newpass1", "alice")

        await service.change_password("secret123", "newpass1", "alice")

        stored = self.user_store.users[user.id].password_hash
        self.assertTrue(bcrypt.verify("newpass1", stored))
        self.assertFalse(bcrypt.verify("secret123", stored))


class TestUpdateUser(UserDataServiceTestBase):

    async def test_update_own_account(self):
        user = await self._activated_user()

        await self.service.update_user("Alice", "Smith", "New@X.com", "fr",
                                       "http://img", "alice")

        stored = self.user_store.users[user.id]
        self.assertEqual(stored.first_name, "Alice")
        self.assertEqual(stored.last_name, "Smith")
        self.assertEqual(stored.email, "new@x.com")
        self.assertEqual(stored.lang_key, "fr")
        self.assertEqual(stored.image_url, "http://img")
        self.assertEqual(stored.last_modified_by, "alice")

    async def test_update_without_principal_is_noop(self):
        user = await self._activated_user()

        await self.service.update_user("Alice", None, None, None, None, None)

        self.assertIsNone(self.user_store.users[user.id].first_name)

    async def test_update_from_dto_replaces_memberships(self):
        user = await self._activated_user()
        dto = UserDto(id=user.id, login="Alice2", email="a@x.com",
                      activated=False, lang_key="de",
                      authorities={ROLE_ADMIN, "ROLE_UNKNOWN"})

        updated = await self.service.update_user_from_dto(dto, "admin")

        self.assertEqual(updated.login, "alice2")
        self.assertFalse(updated.activated)
        self.assertEqual(updated.authorities, {ROLE_ADMIN})
        self.assertEqual(updated.last_modified_by, "admin")
        self.assertEqual(self.user_store.memberships, {(user.id, ROLE_ADMIN)})

    async def test_update_from_dto_unknown_id(self):
        self.assertIsNone(await self.service.update_user_from_dto(
            UserDto(id=42, login="ghost")))

    async def test_update_from_dto_without_id(self):
        self.assertIsNone(await self.service.update_user_from_dto(
            UserDto(login="ghost")))


class TestDeleteUser(UserDataServiceTestBase):

    async def test_delete_user(self):
        user = await self._activated_user()

        await self.service.delete_user("alice")

        self.assertEqual(self.user_store.users, {})
        self.assertNotIn((user.id, ROLE_USER), self.user_store.memberships)

    async def test_delete_unknown_login(self):
        await self.service.delete_user("ghost")

    async def test_delete_record_never_saved(self):
        user_dal = MagicMock()
        service = UserDataService(user_dal, self.authority_store, self.logger)

        await service.delete_user_record(User(login="ghost"))

        user_dal.transaction.assert_not_called()
        user_dal.delete.assert_not_called()

    async def test_delete_record_removes_memberships_first(self):
        user_dal = MagicMock()
        calls = []
        user_dal.delete_user_authorities_by_user_id = AsyncMock(
            side_effect=lambda user_id: calls.append("memberships"))
        user_dal.delete = AsyncMock(side_effect=lambda user: calls.append(
            "user"))
        service = UserDataService(user_dal, self.authority_store, self.logger)

        await service.delete_user_record(User(login="bob", id=7))

        self.assertEqual(calls, ["memberships", "user"])


class TestRemoveNotActivatedUsers(UserDataServiceTestBase):

    async def test_only_stale_unactivated_users_removed(self):
        stale = await self._register(login="stale", email="s@x.com")
        fresh = await self._register(login="fresh", email="f@x.com")
        old_active = await self._activated_user(login="old",
                                                email="o@x.com")
        for user_id in (stale.id, old_active.id):
            self.user_store.users[user_id].created_date = _aware(days=4)

        removed = await self.service.remove_not_activated_users()

        self.assertEqual([user.login for user in removed], ["stale"])
        self.assertEqual(sorted(self.user_store.users),
                         sorted([fresh.id, old_active.id]))
        self.assertNotIn((stale.id, ROLE_USER), self.user_store.memberships)

    async def test_user_activated_after_scan_is_kept(self):
        user = await self._register()
        self.user_store.users[user.id].created_date = _aware(days=4)
        candidates = await self.user_store.\
            find_all_not_activated_created_before(_aware(days=3))
        self.assertEqual([candidate.id for candidate in candidates], [user.id])

        activated = await self.service.activate_registration(
            user.activation_key)
        self.assertTrue(activated.activated)

        self.user_store.find_all_not_activated_created_before = AsyncMock(
            return_value=candidates)
        removed = await self.service.remove_not_activated_users()

        self.assertEqual(removed, [])
        self.assertIn(user.id, self.user_store.users)
        self.assertIn((user.id, ROLE_USER), self.user_store.memberships)

    async def test_nothing_to_remove(self):
        await self._register()

        self.assertEqual(await self.service.remove_not_activated_users(), [])

    @patch("accounts.data_services.user_data_service._utc_now")
    async def test_cutoff_uses_retention(self, mock_now):
        now = datetime(2025, 3, 10, 1, 0, tzinfo=timezone.utc)
        mock_now.return_value = now
        user_dal = MagicMock()
        user_dal.find_all_not_activated_created_before = AsyncMock(
            return_value=[])
        service = UserDataService(user_dal, self.authority_store, self.logger,
                                  not_activated_retention_days=5)

        await service.remove_not_activated_users()

        user_dal.find_all_not_activated_created_before.assert_awaited_once_with(
            now - timedelta(days=5))


class TestReadPaths(UserDataServiceTestBase):

    async def test_managed_users_exclude_anonymous(self):
        await self._activated_user(login="anonymoususer", email="n@x.com")
        alice = await self._activated_user()

        users = await self.service.get_all_managed_users(PageRequest())

        self.assertEqual([dto.login for dto in users], ["alice"])
        self.assertEqual(users[0].authorities, {ROLE_USER})
        self.assertEqual(users[0].id, alice.id)
        self.assertEqual(await self.service.count_managed_users(), 1)

    async def test_managed_users_paging(self):
        for idx in range(3):
            await self._activated_user(login=f"user{idx}",
                                       email=f"u{idx}@x.com")

        users = await self.service.get_all_managed_users(
            PageRequest(page=1, size=2))

        self.assertEqual([dto.login for dto in users], ["user2"])

    async def test_dto_carries_no_secrets(self):
        await self._activated_user()

        dto = (await self.service.get_all_managed_users(PageRequest()))[0]

        self.assertNotIn("password_hash", dto.model_dump())
        self.assertNotIn("activation_key", dto.model_dump())

    async def test_user_with_authorities(self):
        user = await self._activated_user()

        by_login = await self.service.get_user_with_authorities_by_login(
            "alice")
        by_id = await self.service.get_user_with_authorities(user.id)

        self.assertEqual(by_login.authorities, {ROLE_USER})
        self.assertEqual(by_id.login, "alice")

    async def test_current_user(self):
        await self._activated_user()

        self.assertIsNone(
            await self.service.get_current_user_with_authorities(None))
        current = await self.service.get_current_user_with_authorities(
            "alice")
        self.assertEqual(current.authorities, {ROLE_USER})

    async def test_get_authorities(self):
        self.assertEqual(await self.service.get_authorities(),
                         [ROLE_ADMIN, ROLE_USER])
