# Wire models for the HTTP API and the relay.
# Field aliases carry the camelCase names the browser client expects.
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow():
    return datetime.now(timezone.utc)


def iso_now():
    return utcnow().isoformat().replace('+00:00', 'Z')


class Visibility(str, Enum):
    public = 'public'
    private = 'private'

    @classmethod
    def from_flag(cls, is_public: bool):
        return cls.public if is_public else cls.private


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def wire(self):
        return self.model_dump(mode='json', by_alias=True)


class StoredFile(WireModel):
    name: str
    size: int
    modified: datetime
    url: str
    is_public: bool = Field(..., alias='isPublic')
    has_password: bool = Field(False, alias='hasPassword')


class UploadResult(WireModel):
    success: bool = True
    message: str = 'File uploaded successfully'
    filename: str
    size: int
    url: str
    is_public: bool = Field(..., alias='isPublic')
    has_password: bool = Field(..., alias='hasPassword')


class VerifyRequest(BaseModel):
    filename: Optional[str] = None
    password: Optional[str] = None


class Participant(WireModel):
    id: str
    name: str
    user_id: str = Field(..., alias='userId')
    joined_at: datetime = Field(default_factory=utcnow, alias='joinedAt')


class ChatMessage(WireModel):
    id: str
    user: str
    user_id: str = Field(..., alias='userId')
    message: str
    timestamp: str = Field(default_factory=iso_now)


class PrivateMessage(WireModel):
    from_user_id: str = Field(..., alias='fromUserId')
    from_user_name: str = Field(..., alias='fromUserName')
    message: str
    timestamp: str = Field(default_factory=iso_now)


class FileShared(WireModel):
    user: str
    file_name: Optional[str] = Field(None, alias='fileName')
    file_size: Optional[int] = Field(None, alias='fileSize')
    is_public: Optional[bool] = Field(None, alias='isPublic')
    timestamp: str = Field(default_factory=iso_now)
