from datetime import datetime
from typing import Optional

from app.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    type: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None
