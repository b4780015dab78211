# models/chat.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class AttachmentType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


class MessageCreate(BaseModel):
    receiver_id: str
    message: str = ""
    attachment_url: Optional[str] = None
    attachment_type: Optional[AttachmentType] = None

    @model_validator(mode="after")
    def text_or_attachment(self):
        self.message = self.message.strip()
        if not self.message and not self.attachment_url:
            raise ValueError("a message needs text or an attachment")
        if self.attachment_url and self.attachment_type is None:
            self.attachment_type = AttachmentType.DOCUMENT
        return self
