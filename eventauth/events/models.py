from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from eventauth.common.utils import now


class Event(BaseModel):
    event_id: str
    name: str = ""
    pin: Optional[str] = None
    pin_generated_at: Optional[datetime] = None
    administrators: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    def public_view(self) -> dict:
        return self.model_dump(mode="json", exclude={"pin", "pin_generated_at"})
