"""User registration and account status."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .allocation import release_assignment
from .state_store import ResourceStateStore
from .unit_of_work import UnitOfWork
from fleet.domain.entities import ensure_transition
from fleet.domain.enums import ACCOUNT_TRANSITIONS, AccountStatus, UserRole
from fleet.domain.errors import ConflictError, DriverBusy, ValidationError
from fleet.domain.identifiers import IdCategory
from fleet.infrastructure.identity import IdentityRegistry
from fleet.infrastructure.locks import driver_key, record_key, vehicle_key
from fleet.infrastructure.models import UserModel
from fleet.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, uow: UnitOfWork, identity: IdentityRegistry):
        self.uow = uow
        self.identity = identity

    async def register_user(
        self, email: str, name: str, role: UserRole = UserRole.EMPLOYEE
    ) -> UserModel:
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email is required")
        if not (name or "").strip():
            raise ValidationError("Name is required")

        async def operation(session: AsyncSession) -> UserModel:
            repo = UserRepository(session)
            if await repo.get_by_email(email) is not None:
                raise ConflictError(
                    f"Email {email} is already registered", details={"email": email}
                )
            user = UserModel(
                id=await self.identity.next_id(session, IdCategory.USER),
                email=email,
                name=name.strip(),
                role=role,
                status=AccountStatus.PENDING,
            )
            return await repo.create(user)

        user = await self.uow.run(operation, lock_keys=(record_key("email", email),))
        logger.info("User %s registered as %s", user.id, role.value)
        return user

    async def set_account_status(
        self, user_id: str, target: AccountStatus
    ) -> UserModel:
        """Activate or deactivate an account.

        Deactivating a driver releases their vehicle; a driver in the middle
        of a trip cannot be deactivated.
        """

        async def peek(session: AsyncSession) -> Optional[str]:
            user = await ResourceStateStore(session).get_user(user_id)
            return user.assigned_vehicle

        vehicle_id = await self.uow.read(peek)

        async def operation(session: AsyncSession) -> UserModel:
            store = ResourceStateStore(session)
            user = await store.get_user(user_id, for_update=True)
            if user.assigned_vehicle != vehicle_id:
                raise ConflictError(
                    f"Assignment of {user_id} changed concurrently, retry",
                    details={"user_id": user_id},
                )
            user.status = ensure_transition(
                "account", ACCOUNT_TRANSITIONS, AccountStatus(user.status), target
            )
            if target == AccountStatus.INACTIVE:
                if await store.trips.get_ongoing_for_driver(user_id) is not None:
                    raise DriverBusy(
                        f"User {user_id} has an ongoing trip",
                        details={"user_id": user_id},
                    )
                await release_assignment(store, user)
            await session.flush()
            return user

        keys = [driver_key(user_id)]
        if vehicle_id is not None:
            keys.append(vehicle_key(vehicle_id))
        user = await self.uow.run(operation, lock_keys=keys)
        logger.info("User %s is now %s", user_id, target.value)
        return user

    async def get_user(self, user_id: str) -> UserModel:
        return await self.uow.read(
            lambda session: ResourceStateStore(session).get_user(user_id)
        )

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        status: Optional[AccountStatus] = None,
    ) -> list[UserModel]:
        return await self.uow.read(
            lambda session: UserRepository(session).get_all(role=role, status=status)
        )
