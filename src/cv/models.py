"""
CV document schema.

The browser sends camelCase JSON; fields are snake_case here with camelCase
aliases so `model_dump(by_alias=True)` round-trips to the wire shape. Unknown
keys are kept so nothing the client stores is silently dropped.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Contact(_CamelModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    website: str = ""


class ExperienceItem(_CamelModel):
    company: str = ""
    role: str = ""
    start_date: str = ""
    end_date: Optional[str] = None
    description: Optional[str] = None


class ProjectItem(_CamelModel):
    title: str = ""
    start_date: str = ""
    end_date: Optional[str] = None
    description: Optional[str] = None


class EducationItem(_CamelModel):
    school: str = ""
    degree: str = ""
    start_date: str = ""
    end_date: Optional[str] = None


class CvData(_CamelModel):
    full_name: str = ""
    title: Optional[str] = ""
    summary: Optional[str] = ""
    contact: Contact = Field(default_factory=Contact)
    experience: List[ExperienceItem] = Field(default_factory=list)
    projects: List[ProjectItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    template_key: str = "classic"
    cv_language: Literal["en", "ar"] = "en"

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
