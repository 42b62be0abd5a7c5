"""
Copyright (C) 2025  AccountHub Development Team
SPDX-License-Identifier: AGPL-3.0-or-later

This file is part of AccountHub. See the LICENSE file in the project
root for full license details.
"""
from datetime import datetime, timedelta, timezone
import logging
import typing
from passlib.hash import bcrypt
from accounts import random_util
from accounts.constants import (ANONYMOUS_USER,
                                DEFAULT_LANGUAGE,
                                NOT_ACTIVATED_RETENTION_DAYS,
                                RESET_KEY_VALIDITY_HOURS,
                                ROLE_USER,
                                SYSTEM_ACCOUNT)
from accounts.data_access_layer.authority_data_access_layer import \
    AuthorityDataAccessLayer
from accounts.data_access_layer.user_data_access_layer import \
    UserDataAccessLayer
from accounts.exceptions import (EmailAlreadyUsedError,
                                 InvalidPasswordError,
                                 LoginAlreadyUsedError)
from accounts.models import PageRequest, User, UserDto


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserDataService:
    """
    User lifecycle and credential management.

    Every mutating operation runs inside a transaction on the connection
    shared by the data access layers, so a sequence touching the user row and
    its memberships either fully applies or leaves nothing behind.

    The acting user is passed explicitly as ``principal`` (a login, or None
    outside of a user request); audit fields fall back to the ``system``
    sentinel when it is absent. Lookups that find nothing return None rather
    than raising.
    """
    # pylint: disable=too-many-arguments, too-many-public-methods

    def __init__(self,
                 user_dal: UserDataAccessLayer,
                 authority_dal: AuthorityDataAccessLayer,
                 logger: logging.Logger,
                 password_hasher=bcrypt,
                 anonymous_user: str = ANONYMOUS_USER,
                 default_language: str = DEFAULT_LANGUAGE,
                 not_activated_retention_days: int =
                 NOT_ACTIVATED_RETENTION_DAYS,
                 reset_key_validity_hours: int = RESET_KEY_VALIDITY_HOURS):
        self._user_dal = user_dal
        self._authority_dal = authority_dal
        self._logger: logging.Logger = logger.getChild(__name__)
        self._password_hasher = password_hasher
        self._anonymous_user = anonymous_user
        self._default_language = default_language
        self._not_activated_retention = timedelta(
            days=not_activated_retention_days)
        self._reset_key_validity = timedelta(hours=reset_key_validity_hours)

    # -------------------------
    # Activation and password reset
    # -------------------------

    async def activate_registration(self, key: str,
                                    principal: typing.Optional[str] = None
                                    ) -> typing.Optional[User]:
        """
        Activate the account holding an activation key.

        The key is consumed, so a second call with the same key finds
        nothing.

        Returns:
            The activated user, or None if no account holds the key.
        """
        self._logger.debug("Activating user for activation key %s", key)

        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_activation_key(key)
            if user is None:
                return None

            user.activated = True
            user.activation_key = None
            await self._update_user(user, principal)

        self._logger.debug("Activated user: %s", user)
        return user

    async def request_password_reset(self, mail: str,
                                     principal: typing.Optional[str] = None
                                     ) -> typing.Optional[User]:
        """
        Issue a password reset key for an activated account.

        The caller is responsible for sending the key to the user.

        Returns:
            The user carrying the new ``reset_key``, or None when the email is
            unknown or the account is not activated.
        """
        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_email_ignore_case(mail)
            if user is None or not user.activated:
                return None

            user.reset_key = random_util.generate_reset_key()
            user.reset_date = _utc_now()
            await self._update_user(user, principal)

        self._logger.debug("Issued password reset key for user: %s", user)
        return user

    async def complete_password_reset(self, new_password: str, key: str,
                                      principal: typing.Optional[str] = None
                                      ) -> typing.Optional[User]:
        """
        Set a new password using a reset key.

        The key only matches while its reset date is within the validity
        window (24 hours by default). An expired key is treated exactly like
        an unknown one. On success the key is consumed.

        Returns:
            The updated user, or None.
        """
        self._logger.debug("Reset user password for reset key %s", key)

        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_reset_key(key)
            if user is None or not self._is_reset_key_current(user):
                return None

            user.password_hash = self._password_hasher.hash(new_password)
            user.reset_key = None
            user.reset_date = None
            await self._update_user(user, principal)

        return user

    # -------------------------
    # Account creation
    # -------------------------

    async def register_user(self, user_dto: UserDto, password: str,
                            principal: typing.Optional[str] = None) -> User:
        """
        Self-service registration.

        A login or email held by an activated account is a conflict. One held
        by an account that was never activated is reclaimed: that account is
        deleted before the new one is created.

        Args:
            user_dto (UserDto): Candidate account details.
            password (str): Clear text password, only its hash is stored.
            principal (str): Acting user, usually None.

        Returns:
            The new, unactivated user carrying its activation key.

        Raises:
            LoginAlreadyUsedError: Login taken by an activated account.
            EmailAlreadyUsedError: Email taken by an activated account.
        """
        login = user_dto.login.lower()
        email = user_dto.email.lower() if user_dto.email else None

        async with self._user_dal.transaction():
            existing = await self._user_dal.find_one_by_login(login)
            if existing is not None:
                if existing.activated:
                    raise LoginAlreadyUsedError(login)
                await self.delete_user_record(existing)

            if email is not None:
                existing = await self._user_dal.find_one_by_email_ignore_case(
                    email)
                if existing is not None:
                    if existing.activated:
                        raise EmailAlreadyUsedError(email)
                    await self.delete_user_record(existing)

            new_user = User(
                login=login,
                password_hash=self._password_hasher.hash(password),
                first_name=user_dto.first_name,
                last_name=user_dto.last_name,
                email=email,
                image_url=user_dto.image_url,
                lang_key=user_dto.lang_key,
                # new user is not active until the key is used
                activated=False,
                activation_key=random_util.generate_activation_key())

            authority = await self._authority_dal.find_by_id(ROLE_USER)
            if authority is not None:
                new_user.authorities.add(authority.name)

            await self._create_user(new_user, principal)

        self._logger.debug("Created Information for User: %s", new_user)
        return new_user

    async def create_user(self, user_dto: UserDto,
                          principal: typing.Optional[str] = None) -> User:
        """
        Administrative account creation.

        The account is activated immediately. It gets a random server side
        password and a reset key, the caller is expected to trigger the
        reset/invite flow out of band. Unknown authority names are skipped.

        Returns:
            The created user.
        """
        user = User(
            login=user_dto.login.lower(),
            first_name=user_dto.first_name,
            last_name=user_dto.last_name,
            email=user_dto.email.lower() if user_dto.email else None,
            image_url=user_dto.image_url,
            lang_key=user_dto.lang_key or self._default_language,
            password_hash=self._password_hasher.hash(
                random_util.generate_password()),
            reset_key=random_util.generate_reset_key(),
            reset_date=_utc_now(),
            activated=True)

        async with self._user_dal.transaction():
            user.authorities = await self._resolve_authorities(
                user_dto.authorities)
            await self._create_user(user, principal)

        self._logger.debug("Created Information for User: %s", user)
        return user

    # -------------------------
    # Account updates
    # -------------------------

    async def update_user(self,
                          first_name: typing.Optional[str],
                          last_name: typing.Optional[str],
                          email: typing.Optional[str],
                          lang_key: typing.Optional[str],
                          image_url: typing.Optional[str],
                          principal: typing.Optional[str]) -> None:
        """
        Update the display attributes of the principal's own account. Does
        nothing without a principal or when its account does not exist.
        """
        if principal is None:
            return

        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_login(principal)
            if user is None:
                return

            user.first_name = first_name
            user.last_name = last_name
            if email is not None:
                user.email = email.lower()
            user.lang_key = lang_key
            user.image_url = image_url
            await self._update_user(user, principal)

        self._logger.debug("Changed Information for User: %s", user)

    async def update_user_from_dto(self, user_dto: UserDto,
                                   principal: typing.Optional[str] = None
                                   ) -> typing.Optional[UserDto]:
        """
        Administrative update of every attribute of an account, including
        its activation flag. The membership set is replaced: all existing
        memberships are removed and each resolvable authority of the DTO is
        added back.

        Returns:
            The external representation of the updated user, or None if no
            account has the DTO's id.
        """
        if user_dto.id is None:
            return None

        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_id(user_dto.id)
            if user is None:
                return None

            user.login = user_dto.login.lower()
            user.first_name = user_dto.first_name
            user.last_name = user_dto.last_name
            if user_dto.email is not None:
                user.email = user_dto.email.lower()
            user.image_url = user_dto.image_url
            user.activated = user_dto.activated
            user.lang_key = user_dto.lang_key
            user.authorities = await self._resolve_authorities(
                user_dto.authorities)

            await self._update_user(user, principal)

            await self._user_dal.delete_user_authorities_by_user_id(user.id)
            for authority_name in sorted(user.authorities):
                await self._user_dal.save_user_authority(user.id,
                                                         authority_name)

        self._logger.debug("Changed Information for User: %s", user)
        return UserDto.from_user(user)

    async def change_password(self, current_clear_text_password: str,
                              new_password: str,
                              principal: typing.Optional[str]) -> None:
        """
        Change the principal's password. Does nothing without a principal or
        when its account does not exist.

        Raises:
            InvalidPasswordError: The current password does not verify, the
                                  stored hash is left unchanged.
        """
        if principal is None:
            return

        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_login(principal)
            if user is None:
                return

            if not self._password_hasher.verify(current_clear_text_password,
                                                user.password_hash):
                raise InvalidPasswordError()

            user.password_hash = self._password_hasher.hash(new_password)
            await self._update_user(user, principal)

        self._logger.debug("Changed password for User: %s", user)

    # -------------------------
    # Deletion
    # -------------------------

    async def delete_user(self, login: str,
                          principal: typing.Optional[str] = None) -> None:
        """ Delete the account with a login, if there is one. """
        async with self._user_dal.transaction():
            user = await self._user_dal.find_one_by_login(login)
            if user is None:
                return

            await self.delete_user_record(user)

        self._logger.debug("Deleted User: %s (by %s)", user,
                           principal or SYSTEM_ACCOUNT)

    async def delete_user_record(self, user: User) -> None:
        """
        Delete a user: its memberships first, then the user row. A user that
        was never saved (no id) is ignored. Deleting a row that is already
        gone is not an error.
        """
        if user.id is None:
            return

        async with self._user_dal.transaction():
            await self._user_dal.delete_user_authorities_by_user_id(user.id)
            await self._user_dal.delete(user)

    async def remove_not_activated_users(self) -> list[User]:
        """
        Delete registrations that were never activated within the retention
        window (3 days by default). Users whose activation key was consumed,
        and activated users of any age, are never removed, including a
        candidate activated between the scan and its deletion.

        Returns:
            The users removed.
        """
        cutoff = _utc_now() - self._not_activated_retention
        candidates = await self._user_dal.\
            find_all_not_activated_created_before(cutoff)

        removed: list[User] = []
        for user in candidates:
            if not await self._user_dal.delete_not_activated(user.id):
                self._logger.debug("User %s was activated, keeping it", user)
                continue

            self._logger.debug("Deleted User: %s", user)
            removed.append(user)

        return removed

    # -------------------------
    # Read paths
    # -------------------------

    async def get_all_managed_users(self, page: PageRequest
                                    ) -> list[UserDto]:
        """ A page of users, excluding the anonymous user. """
        users = await self._user_dal.find_all_by_login_not(page,
                                                           self._anonymous_user)
        authorities = await self._user_dal.find_authorities_by_user_ids(
            [user.id for user in users])

        for user in users:
            user.authorities = authorities.get(user.id, set())

        return [UserDto.from_user(user) for user in users]

    async def count_managed_users(self) -> int:
        return await self._user_dal.count_all_by_login_not(self._anonymous_user)

    async def get_user_with_authorities_by_login(self, login: str
                                                 ) -> typing.Optional[User]:
        return await self._user_dal.find_one_with_authorities_by_login(login)

    async def get_user_with_authorities(self, user_id: int
                                        ) -> typing.Optional[User]:
        return await self._user_dal.find_one_with_authorities_by_id(user_id)

    async def get_current_user_with_authorities(
            self, principal: typing.Optional[str]) -> typing.Optional[User]:
        if principal is None:
            return None
        return await self._user_dal.find_one_with_authorities_by_login(
            principal)

    async def get_authorities(self) -> list[str]:
        """ Names of every authority. """
        return [authority.name
                for authority in await self._authority_dal.find_all()]

    # -------------------------
    # Internal helpers
    # -------------------------

    def _is_reset_key_current(self, user: User) -> bool:
        if user.reset_date is None:
            return False
        return user.reset_date > _utc_now() - self._reset_key_validity

    async def _resolve_authorities(self, names: typing.Iterable[str]
                                   ) -> set[str]:
        resolved: set[str] = set()
        for name in names or ():
            authority = await self._authority_dal.find_by_id(name)
            if authority is not None:
                resolved.add(authority.name)
        return resolved

    async def _create_user(self, user: User,
                           principal: typing.Optional[str]) -> User:
        actor = principal or SYSTEM_ACCOUNT
        now = _utc_now()
        user.created_by = actor
        user.created_date = now
        user.last_modified_by = actor
        user.last_modified_date = now

        async with self._user_dal.transaction():
            await self._user_dal.save(user)
            for authority_name in sorted(user.authorities):
                await self._user_dal.save_user_authority(user.id,
                                                         authority_name)
        return user

    async def _update_user(self, user: User,
                           principal: typing.Optional[str]) -> User:
        user.last_modified_by = principal or SYSTEM_ACCOUNT
        user.last_modified_date = _utc_now()
        return await self._user_dal.save(user)
