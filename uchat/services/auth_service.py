from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uchat.core.exceptions import InvalidCredentialsException, UserAlreadyExistsException
from uchat.core.log_config import logger
from uchat.models.user import User
from uchat.core.security import hash_password, verify_password, create_access_token
from uchat.schemas.auth import RegisterRequest, LoginRequest
from uchat.utils.clock import utcnow


def _issue_token(user: User) -> str:
    return create_access_token(
        data={
            "user_id": str(user.id),
            "username": user.username,
            "display_name": user.display_name
        }
    )


class AuthService:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def register_user(self, request: RegisterRequest):
        """
        Handles the logic for registering a user.
        
        Args:
            request: Registration data
            
        Returns:
            A tuple (user, access_token)
        """
        existing_user = await self.db_session.execute(
            select(User).filter(
                (User.username == request.username) | (User.email == request.email)
            )
        )
        if existing_user.scalar():
            raise UserAlreadyExistsException()
        
        user = User(
            username=request.username,
            display_name=request.display_name,
            email=request.email,
            avatar=request.avatar,
            color=request.color,
            hashed_password=hash_password(request.password)
        )
        self.db_session.add(user)
        await self.db_session.commit()

        logger.info(f"Registered user {user.username} ({user.id})")
        return user, _issue_token(user)

    async def login_user(self, request: LoginRequest):
        """
        Handles the logic for logging in a user.
        
        Args:
            request: Login credentials
            
        Returns:
            A tuple (user, access_token)
        """
        user = await self.db_session.execute(
            select(User).filter(User.username == request.username)
        )
        user = user.scalar_one_or_none()
        
        if not user or not user.is_active or not verify_password(request.password, user.hashed_password):
            raise InvalidCredentialsException()

        user.is_online = True
        user.last_seen = utcnow()
        await self.db_session.commit()

        return user, _issue_token(user)

    async def logout_user(self, user: User):
        """Marks the user offline. Tokens stay valid until they expire."""
        user.is_online = False
        user.last_seen = utcnow()
        await self.db_session.commit()
