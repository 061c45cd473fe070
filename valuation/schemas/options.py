from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from valuation.core.types import OptionCategory


class OptionCreateRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=200)


class OptionsResponse(BaseModel):
    category: OptionCategory
    values: List[str]
