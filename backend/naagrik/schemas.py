from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, confloat, field_serializer
from naagrik.models.issue import IssueStatus
from naagrik.models.user import Role


def _utc_isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 with an explicit offset; SQLite hands back naive UTC datetimes"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class ApiModel(BaseModel):
    # Fields are filled by name in Python and emitted under their camelCase alias
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ---------- Requests ----------

# Strict so that "12.9" is rejected rather than coerced; NaN and Infinity are not coordinates
Latitude = confloat(strict=True, allow_inf_nan=False, ge=-90, le=90)
Longitude = confloat(strict=True, allow_inf_nan=False, ge=-180, le=180)


class Location(ApiModel):
    lat: Latitude
    lng: Longitude


class IssueCreate(ApiModel):
    # Optional here so that missing fields reach the service and get its message
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[Location] = None
    photo: Optional[str] = None


class CommentCreate(ApiModel):
    text: Optional[str] = None


class StatusUpdate(ApiModel):
    status: Optional[str] = None


class RegisterRequest(ApiModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


# ---------- Read models ----------

class AuthorSummary(ApiModel):
    """Author embedded in an issue"""
    id: str
    username: str
    email: Optional[str] = None
    role: Optional[Role] = None
    avatar: Optional[str] = None


class CommentAuthorSummary(ApiModel):
    """Reduced author embedded in a comment"""
    id: str
    username: str
    avatar: Optional[str] = None


class CommentRead(ApiModel):
    id: str
    text: str
    issue_id: str = Field(alias="issueId")
    created_at: datetime = Field(alias="createdAt")
    user: CommentAuthorSummary

    @field_serializer('created_at')
    def serialize_created_at(self, value: datetime, _info):
        return _utc_isoformat(value)


class IssueRead(ApiModel):
    id: str
    title: str
    description: str
    category: str
    photo: Optional[str] = None
    location: Location
    status: IssueStatus
    upvotes: int
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    user: AuthorSummary
    comments: Optional[List[CommentRead]] = None

    @field_serializer('created_at')
    def serialize_created_at(self, value: datetime, _info):
        return _utc_isoformat(value)

    @field_serializer('updated_at')
    def serialize_updated_at(self, value: Optional[datetime], _info):
        return _utc_isoformat(value)


class UserProfile(ApiModel):
    id: str
    username: str
    email: str
    role: Role
    avatar: Optional[str] = None
    description: Optional[str] = None
    contact: Optional[str] = None
    issues_reported: int = Field(alias="issuesReported")
    issues_resolved: int = Field(alias="issuesResolved")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_serializer('created_at')
    def serialize_created_at(self, value: datetime, _info):
        return _utc_isoformat(value)

    @field_serializer('updated_at')
    def serialize_updated_at(self, value: Optional[datetime], _info):
        return _utc_isoformat(value)


class RegisterResponse(ApiModel):
    message: str
    user: UserProfile


class AuthResponse(ApiModel):
    token: str
    user: UserProfile


class MessageResponse(ApiModel):
    message: str


class CleanupResponse(ApiModel):
    message: str
    deleted_count: int = Field(alias="deletedCount")


class UploadResponse(ApiModel):
    url: str
    public_id: str
