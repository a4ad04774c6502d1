from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uchat.models.user import User
from uchat.schemas.user import UpdateProfileRequest


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self, limit: int = 50) -> List[User]:
        result = await self.db.execute(
            select(User)
            .filter(User.is_active.is_(True))
            .order_by(User.username)
            .limit(limit)
        )
        return result.scalars().all()

    async def update_profile(self, user: User, request: UpdateProfileRequest) -> User:
        """
        Updates display name, avatar and color. Messages already sent keep
        the snapshot taken when they were sent.
        """
        for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, field, value)
        await self.db.commit()
        return user
