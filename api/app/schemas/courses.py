from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

OMITTED_WHEN_NULL = ("deletedAt", "deletedBy", "deleted_at", "deleted_by")


class CourseCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    role: str | None = None
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    created_at: datetime
    created_by: UUID
    updated_at: datetime | None = None
    updated_by: UUID | None = None
    deleted_at: datetime | None = None
    deleted_by: UUID | None = None

    def to_response(self) -> CourseOut:
        return CourseOut(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            created_by=self.created_by,
            updated_at=self.updated_at,
            updated_by=self.updated_by,
            deleted_at=self.deleted_at,
            deleted_by=self.deleted_by,
        )


class CourseOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    user_id: UUID = Field(alias="userID")
    title: str
    content: str
    created_at: datetime = Field(alias="createdAt")
    created_by: UUID = Field(alias="createdBy")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    updated_by: UUID | None = Field(default=None, alias="updatedBy")
    deleted_at: datetime | None = Field(default=None, alias="deletedAt")
    deleted_by: UUID | None = Field(default=None, alias="deletedBy")

    @model_serializer(mode="wrap")
    def _omit_null_deletion(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in OMITTED_WHEN_NULL:
            if key in data and data[key] is None:
                del data[key]
        return data


@dataclass(slots=True, frozen=True)
class CourseQueryParameters:
    page: int = 0
    limit: int = 10
    sort: str = ""
    order: str = ""
    role: str = ""

    @property
    def offset(self) -> int:
        return self.page * self.limit
