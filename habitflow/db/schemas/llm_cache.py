from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class CacheRecord(BaseModel):
    id: int
    request_hash: str
    prompt: str
    model: str
    response_content: str
    user_id: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
