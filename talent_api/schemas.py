from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    selected_locations: List[str] = Field(default_factory=list)
    selected_skills: List[str] = Field(default_factory=list)
    selected_clients: List[str] = Field(default_factory=list)
    selected_roles: List[str] = Field(default_factory=list)
    selected_verticals: List[str] = Field(default_factory=list)
    selected_domains: List[str] = Field(default_factory=list)
    selected_it_types: List[str] = Field(default_factory=list)
    top_n: int = 5


class ChatRequest(BaseModel):
    question: str
