from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AssociationIn(BaseModel):
    handle: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    color: int = 0


class AssociationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    handle: str
    name: str
    description: str
    color: int


class ListIn(BaseModel):
    handle: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    association_id: int
    promo: int | None = None
    color: int = 0


class ListOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    handle: str
    name: str
    description: str
    association_id: int
    promo: int | None
    color: int


class EventIn(BaseModel):
    association_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    start_date: datetime
    end_date: datetime
    location: str = ""

    @model_validator(mode="after")
    def _check_dates(self) -> EventIn:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    association_id: int | None
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    location: str
    validated: bool


class SubmissionStateOut(BaseModel):
    open: bool


class SubmissionChangeOut(BaseModel):
    success: bool
    message: str
