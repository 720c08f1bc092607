from __future__ import annotations

from typing import List

from pydantic import BaseModel


class ProjectFiltersModel(BaseModel):
    category: str = ""


class MetaCategoriesResponse(BaseModel):
    categories: List[str]


class ProjectRowModel(BaseModel):
    id: str
    category: str
    cost: float
    cost_display: str


class ProjectsResponse(BaseModel):
    rows: List[ProjectRowModel]
