import logging
from typing import Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from ehr_portal.auth import (
    UserPrincipal,
    BUILTIN_ADMIN_ID,
    authorize_ownership,
    create_token,
    hash_password,
    verify_password,
)
from ehr_portal.config import Settings
from ehr_portal.database import session_scope
from ehr_portal.exceptions import Conflict, Forbidden, InvalidArgument, InvalidCredentials, NotFound
from ehr_portal.models.record import MedicalRecord
from ehr_portal.models.user import User, Role
from ehr_portal.schemas.user import RegisterRequest, UserUpdate, ChangePasswordRequest, UserResponse

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# Row ids are 32-bit INTEGER primary keys.
MAX_ROW_ID = 2**31 - 1
SELF_SERVICE_ROLES = (Role.PATIENT, Role.DOCTOR)


def parse_id(row_id: str) -> Optional[int]:
    """Row ids are positive integers; anything else (e.g. "admin") is not stored."""
    try:
        pk = int(row_id)
    except (TypeError, ValueError):
        return None
    return pk if 1 <= pk <= MAX_ROW_ID else None


def builtin_admin_profile(settings: Settings) -> UserResponse:
    return UserResponse(
        id=BUILTIN_ADMIN_ID,
        name=settings.admin_name,
        email=settings.admin_email,
        role=Role.ADMIN,
        wallet_address=settings.admin_wallet_address,
    )


class UserService:
    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        pk = parse_id(user_id)
        user = await db.get(User, pk) if pk is not None else None
        if not user:
            raise NotFound("User not found")
        return user

    async def get_patient_by_wallet(self, db: AsyncSession, wallet_address: str) -> Optional[User]:
        return await db.scalar(
            select(User).where(User.wallet_address == wallet_address, User.role == Role.PATIENT)
        )

    async def _ensure_unique(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        wallet_address: Optional[str] = None,
        exclude_id: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        # the configured administrator's email and wallet are taken too
        if settings is not None:
            if email and settings.admin_email and email == settings.admin_email:
                raise Conflict("Email is already taken by another user")
            if wallet_address and settings.admin_wallet_address and wallet_address == settings.admin_wallet_address:
                raise Conflict("Wallet address is already taken by another user")
        if email:
            query = select(User.id).where(User.email == email)
            if exclude_id is not None:
                query = query.where(User.id != exclude_id)
            if await db.scalar(query) is not None:
                raise Conflict("Email is already taken by another user")
        if wallet_address:
            query = select(User.id).where(User.wallet_address == wallet_address)
            if exclude_id is not None:
                query = query.where(User.id != exclude_id)
            if await db.scalar(query) is not None:
                raise Conflict("Wallet address is already taken by another user")

    async def _commit(self, db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise Conflict("Email or wallet address is already registered") from e

    async def register(self, db: AsyncSession, data: RegisterRequest, role: Role, settings: Settings) -> User:
        if role not in SELF_SERVICE_ROLES:
            raise Forbidden("Admin registration is disabled. Only predefined admin accounts exist.")
        email = data.email.strip()
        wallet_address = data.wallet_address.strip()
        if settings.admin_email and email == settings.admin_email:
            raise Conflict("User with this email already exists")
        if await db.scalar(select(User.id).where(User.email == email)) is not None:
            raise Conflict("User with this email already exists")
        await self._ensure_unique(db, wallet_address=wallet_address, settings=settings)

        user = User(
            name=data.name.strip(),
            email=email,
            password_hash=hash_password(data.password),
            role=role,
            wallet_address=wallet_address,
        )
        db.add(user)
        await self._commit(db)
        await db.refresh(user)
        logger.info("%s registered: id=%s", role.value, user.id)
        return user

    async def login(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        settings: Settings,
        email: str,
        password: str,
    ) -> tuple[str, UserResponse]:
        """
        Authenticate by email and password. The configured administrator is
        matched against settings before the database is touched, so it can
        still sign in while the store is down.
        """
        if not email or not password:
            raise InvalidArgument("Email and password are required")

        if settings.admin_configured and email == settings.admin_email:
            if password != settings.admin_password:
                raise InvalidCredentials()
            profile = builtin_admin_profile(settings)
            token = create_token(BUILTIN_ADMIN_ID, profile.email, Role.ADMIN, profile.wallet_address, settings)
            logger.info("Built-in admin logged in")
            return token, profile

        async with session_scope(sessionmaker) as db:
            user = await db.scalar(select(User).where(User.email == email))
            if not user or not verify_password(password, user.password_hash):
                raise InvalidCredentials()
            token = create_token(user.id, user.email, user.role, user.wallet_address, settings)
            return token, UserResponse.model_validate(user)

    async def list_users(self, db: AsyncSession, role: Optional[Role] = None) -> list[User]:
        query = select(User).order_by(User.id)
        if role is not None:
            query = query.where(User.role == role)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_doctors(self, db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).where(User.role == Role.DOCTOR).order_by(User.name))
        return list(result.scalars().all())

    async def delete_user(self, db: AsyncSession, principal: UserPrincipal, user_id: str) -> None:
        if principal.is_admin and principal.is_user(user_id):
            raise Forbidden("Cannot delete your own admin account")
        user = await self.get_user(db, user_id)

        removed_records = 0
        if user.role is Role.PATIENT:
            result = await db.execute(
                delete(MedicalRecord).where(MedicalRecord.patient_address == user.wallet_address)
            )
            removed_records = result.rowcount or 0
        await db.delete(user)
        await db.commit()
        logger.info("User %s (%s) deleted with %d records", user_id, user.role.value, removed_records)

    async def update_user(
        self,
        db: AsyncSession,
        principal: UserPrincipal,
        user_id: str,
        data: UserUpdate,
        settings: Optional[Settings] = None,
    ) -> tuple[str, User]:
        """A body carrying `role` is a role change; anything else is a profile edit."""
        if data.role:
            user = await self.update_role(db, principal, user_id, data.role)
            return "User role updated successfully", user
        user = await self.update_profile(db, principal, user_id, data, settings)
        return "Profile updated successfully", user

    async def update_role(self, db: AsyncSession, principal: UserPrincipal, user_id: str, new_role: str) -> User:
        if not principal.is_admin:
            raise Forbidden("Only admins can change user roles")
        if principal.is_user(user_id):
            raise Forbidden("Cannot change your own role")
        try:
            role = Role(new_role)
        except ValueError:
            raise InvalidArgument("Invalid role. Must be Patient, Doctor, or Admin")

        user = await self.get_user(db, user_id)
        previous = user.role
        user.role = role
        await self._commit(db)
        await db.refresh(user)
        logger.info("User %s role changed %s -> %s", user_id, previous.value, role.value)
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        principal: UserPrincipal,
        user_id: str,
        data: UserUpdate,
        settings: Optional[Settings] = None,
    ) -> User:
        if principal.is_builtin_admin and principal.is_user(user_id):
            raise Forbidden("The built-in administrator is managed through configuration")
        if not authorize_ownership(principal, user_id):
            raise Forbidden("You can only update your own profile")

        user = await self.get_user(db, user_id)
        email = data.email.strip() if data.email else None
        wallet_address = data.wallet_address.strip() if data.wallet_address else None
        await self._ensure_unique(
            db, email=email, wallet_address=wallet_address, exclude_id=user.id, settings=settings
        )

        if data.name:
            user.name = data.name.strip()
        if email:
            user.email = email
        if wallet_address:
            user.wallet_address = wallet_address
        await self._commit(db)
        await db.refresh(user)
        return user

    async def change_password(
        self, db: AsyncSession, principal: UserPrincipal, user_id: str, data: ChangePasswordRequest
    ) -> None:
        if not data.current_password or not data.new_password:
            raise InvalidArgument("Current password and new password are required")
        if len(data.new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgument(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if not principal.is_user(user_id):
            raise Forbidden("You can only change your own password")
        if principal.is_builtin_admin:
            raise Forbidden("The built-in administrator is managed through configuration")

        user = await self.get_user(db, user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        if verify_password(data.new_password, user.password_hash):
            raise InvalidArgument("New password must be different from current password")

        user.password_hash = hash_password(data.new_password)
        await db.commit()
        logger.info("Password changed for user %s", user_id)


user_service = UserService()
