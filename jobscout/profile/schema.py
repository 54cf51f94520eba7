"""Search profile and parsed résumé models (consumed, not owned)."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

RemotePreference = Literal["only", "hybrid", "no-preference"]


class SearchProfile(BaseModel):
    """A user's saved set of desired titles, skills, locations and filters."""

    name: str
    job_titles: list[str]
    skills: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=lambda: ["United States"])
    is_remote: bool = True
    min_salary: int | None = None
    max_salary: int | None = None
    exclude_keywords: list[str] = Field(default_factory=list)
    include_keywords: list[str] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("job_titles")
    @classmethod
    def job_titles_non_empty(cls, v: list[str]) -> list[str]:
        titles = [t.strip() for t in v if t.strip()]
        if not titles:
            msg = "at least one job title is required"
            raise ValueError(msg)
        return titles


class ResumeSkills(BaseModel):
    technical: list[str] = Field(default_factory=list)
    soft: list[str] = Field(default_factory=list)


class ResumeExperience(BaseModel):
    job_titles: list[str] = Field(default_factory=list)
    years_of_experience: int = 0
    industries: list[str] = Field(default_factory=list)


class ResumePreferences(BaseModel):
    desired_roles: list[str] = Field(default_factory=list)
    min_salary: float | None = None
    max_salary: float | None = None
    salary_period: Literal["hourly", "annual"] = "annual"
    locations: list[str] = Field(default_factory=list)
    remote_preference: RemotePreference = "no-preference"


class ParsedResume(BaseModel):
    """Structured résumé profile used by the match scorer."""

    skills: ResumeSkills = Field(default_factory=ResumeSkills)
    experience: ResumeExperience = Field(default_factory=ResumeExperience)
    preferences: ResumePreferences = Field(default_factory=ResumePreferences)
    summary: str = ""

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ParsedResume":
        """Load a parsed résumé from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Resume file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

    def to_yaml(self, path: str | Path) -> None:
        """Write the résumé profile to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump()
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
