from datetime import datetime
from pydantic import BaseModel


class MediaResponse(BaseModel):
    id: int
    item_id: int
    file_name: str
    file_path: str
    content_type: str
    file_size: int
    media_type: str
    is_primary: bool
    uploaded_at: datetime

    model_config = {"from_attributes": True}
