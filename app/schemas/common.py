"""Response envelopes shared by every endpoint."""
from math import ceil
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    current: int
    pages: int
    total: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(current=page, pages=ceil(total / limit) if limit else 0, total=total)


class DataResponse(BaseModel, Generic[T]):
    """{success: true, data: ...}"""
    success: bool = True
    data: T


class ListResponse(BaseModel, Generic[T]):
    """{success: true, data: [...], pagination: {...}}"""
    success: bool = True
    data: List[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    message: str
