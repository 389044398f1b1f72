"""Request bodies. Field-level rules are checked by the pipeline, not here."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangelogRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    repository: Optional[str] = None
    date_mode: Optional[str] = Field(default=None, alias="dateMode")
    days: Optional[Any] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")


class AnonymousChangelogRequestBody(ChangelogRequestBody):
    identifier: Optional[str] = None  # Browser fingerprint used as the rate-limit key


class EmailRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    changelog_content: Optional[str] = Field(default=None, alias="changelogContent")
    repository: Optional[str] = None
    date_range: Optional[str] = Field(default=None, alias="dateRange")
