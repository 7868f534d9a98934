"""Shared pagination schema for list endpoints."""
import math

from pydantic import BaseModel


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )
