from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Status(Enum):
    ok = "ok"
    error = "error"


class TemplateLocation(BaseModel):
    model_config = ConfigDict(extra="forbid")
    row: int = Field(..., ge=1)
    column: int = Field(..., ge=1)


class TemplateCheck(BaseModel):
    model_config = ConfigDict(extra="forbid")
    template: str
    status: Status
    used_templates: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    location: Optional[TemplateLocation] = None


class CheckReport(BaseModel):
    model_config = ConfigDict(extra="forbid")
    tool_version: str
    root: str
    ok: bool
    templates: List[TemplateCheck]


class SyntaxInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    block_start: str
    block_end: str
    expr_start: str
    expr_end: str
    comment_start: str
    comment_end: str


class EscaperInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")
    path: str
    extensions: List[str]


class ConfigReport(BaseModel):
    model_config = ConfigDict(extra="forbid")
    tool_version: str
    root: str
    config_path: Optional[str] = None
    dirs: List[str]
    default_syntax: str
    whitespace: str
    syntaxes: List[SyntaxInfo]
    escapers: List[EscaperInfo]
