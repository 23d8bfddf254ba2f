from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from chathub.models.message import utc_now


class User(BaseModel):
    sid: str                     # Идентификатор соединения (Socket.IO SID)
    name: str                    # Имя пользователя
    room: Optional[str] = None   # Комната, указанная при входе
    joined_at: datetime = Field(default_factory=utc_now)  # UTC
