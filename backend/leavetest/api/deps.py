from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_async_db
from ..schemas.settings import AssessmentSettings
from ..services.code_judge import CodeJudge
from ..services.settings_service import SettingsService

STAFF_ROLES = ("admin", "staff")


class CurrentUser(BaseModel):
    id: int
    role: str = "student"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Identity forwarded by the gateway; authentication happens upstream."""
    try:
        user_id = int(x_user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return CurrentUser(id=user_id, role=(x_user_role or "student").lower())


def get_current_staff_user(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not current_user.is_staff:
        raise HTTPException(
            status_code=403, detail="The user doesn't have enough privileges"
        )
    return current_user


async def get_assessment_settings(
    db: AsyncSession = Depends(get_async_db),
) -> AssessmentSettings:
    return await SettingsService(db).current()


def get_code_judge() -> CodeJudge:
    return CodeJudge()
