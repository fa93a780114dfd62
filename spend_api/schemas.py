from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class FilterSelectionModel(BaseModel):
    companies: List[str] = Field(default_factory=list)
    suppliers: List[str] = Field(default_factory=list)
    countries: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    years: List[int] = Field(default_factory=list)
