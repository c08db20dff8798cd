from typing import List, Optional
from pydantic import BaseModel, Field

class SnippetCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, le=99999999.99, allow_inf_nan=False)
    language: str = Field(..., min_length=1, max_length=50)
    framework: Optional[str] = Field(None, max_length=50)
    tags: List[str] = []
