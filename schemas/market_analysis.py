from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

RiskLevel = Literal["Low", "Medium", "High"]


class AnalysisResult(BaseModel):
    summary: str
    opportunities: List[str] = Field(default_factory=list)
    riskLevel: RiskLevel
    error: Optional[str] = None
