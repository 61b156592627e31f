"""
schemas/common.py

- Shared schemas used across the project (Pydantic v2)
- Contents:
  1) Standard error response: ErrorDetail, ErrorResponse
  2) Sheet identity query: SheetKey
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


# =========================================================
# 1) Standard error response
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit carrying an error code and message"""
    code: str = Field(..., description="Error code (e.g. SHEET_NOT_FOUND, VALIDATION_ERROR)")
    message: str = Field(..., description="Human readable message")
    details: Optional[List[Any]] = Field(default=None, description="Every offending item of a batched validation")
    reset_time: Optional[int] = Field(default=None, description="Epoch ms when a rate limited client may retry")

    model_config = ConfigDict(extra="ignore")


class ErrorResponse(BaseModel):
    """
    Standard error body returned by the global error handlers
    (middlewares/error_handler.py)
    """
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Response generation time (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="Time spent on the request so far (ms), set by TimingMiddleware"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) Sheet identity
# =========================================================

class SheetKey(BaseModel):
    """(batch, department, year_num, semester) identifies exactly one sheet"""
    batch: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    year_num: int
    semester: int

    model_config = ConfigDict(frozen=True)

    @field_validator("batch", "department", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v
