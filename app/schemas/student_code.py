"""Student code administration schemas"""

from typing import List, Optional
from pydantic import BaseModel


class NextCodeResponse(BaseModel):
    next_code: str
    total_students: int


class GapReportResponse(BaseModel):
    total_students: int
    highest_code: Optional[str] = None
    gaps: List[str]
    gap_count: int


class CodeChangeResponse(BaseModel):
    id: str
    name: Optional[str] = None
    old_code: Optional[str] = None
    new_code: str


class CompactionResponse(BaseModel):
    updated: List[CodeChangeResponse]
    failed: List[CodeChangeResponse]
    pending: List[CodeChangeResponse]
    message: str
