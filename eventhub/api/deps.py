from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.security import get_current_user
from eventhub.db.session import get_db_session

# Dependency for DB session
DbSession = Annotated[AsyncSession, Depends(get_db_session)]

# Verified caller identity
CurrentUser = Annotated[str, Depends(get_current_user)]
