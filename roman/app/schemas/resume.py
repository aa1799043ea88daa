"""
Resume Pydantic schemas - parse results, cached projections, blob metadata
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FileType = Literal["pdf", "docx", "doc", "image"]


class StructuredResume(BaseModel):
    """AI-derived resume fields. Unknown keys from the model are kept (model_extra)."""

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[Any] = Field(default_factory=list)
    experience: List[Any] = Field(default_factory=list)
    education: List[Any] = Field(default_factory=list)

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _scalar_to_str(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("skills", "experience", "education", mode="before")
    @classmethod
    def _to_list(cls, v: Any) -> List[Any]:
        # Models sometimes answer "Python, SQL" or null instead of a list
        if v is None or v == "":
            return []
        if isinstance(v, (list, tuple)):
            return list(v)
        return [v]

    @property
    def additional_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ResumeOwner(BaseModel):
    """Owner context for cache reads/writes: (user, resume)."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    resume_id: str


class StoredBlob(BaseModel):
    id: str
    filename: str
    content_type: str = "application/octet-stream"
    size: int = 0
    upload_date: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class ParseResult(BaseModel):
    text: str = ""
    structured_data: StructuredResume = Field(default_factory=StructuredResume)
    file_type: FileType
    blob_id: str


class CachedResumeData(BaseModel):
    parsed_text: str = ""
    structured_data: StructuredResume = Field(default_factory=StructuredResume)
    file_type: FileType
    blob_id: str
    extracted_at: datetime

    def to_parse_result(self) -> ParseResult:
        return ParseResult(
            text=self.parsed_text,
            structured_data=self.structured_data,
            file_type=self.file_type,
            blob_id=self.blob_id,
        )


class ResumeContext(BaseModel):
    parsed_text: str = ""
    structured_data: StructuredResume = Field(default_factory=StructuredResume)
    file_type: FileType
    blob_id: str

    @classmethod
    def from_parse_result(cls, result: ParseResult) -> "ResumeContext":
        return cls(
            parsed_text=result.text,
            structured_data=result.structured_data,
            file_type=result.file_type,
            blob_id=result.blob_id,
        )


class ResumeOut(BaseModel):
    """Resume record as returned by the API (no parsed payload)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    active: bool
    title: Optional[str] = None
    file_url: Optional[str] = None
    blob_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ResumeFromUrlIn(BaseModel):
    file_url: str
    title: Optional[str] = None
    set_as_active: bool = False
