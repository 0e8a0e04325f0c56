# apps/backend/tracker/schemas/events.py
from __future__ import annotations

from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from tracker.telemetry_utils import iso_now

EventKind = Literal[
  "page_view",
  "form_submit",
  "button_click",
  "brochure_download",
  "form_focus",
  "scroll_25",
  "scroll_50",
  "scroll_75",
  "scroll_100",
  "time_on_page",
]

FormType = Literal["call_back", "brochure", "chat", "general"]


class Event(BaseModel):
  """A captured tracking event. Never mutated after capture."""

  model_config = ConfigDict(frozen=True)
  collection: ClassVar[str] = "traffic_logs"

  kind: EventKind
  session_id: str
  timestamp: str = Field(default_factory=iso_now)
  page: str = "/"
  device_type: str = "desktop"
  browser: str = "Unknown"
  referer: str = "direct"
  user_agent: str = "unknown"

  # free-form detail: button text, field name, "<n> seconds"
  label: Optional[str] = None


class ContactSubmission(BaseModel):
  model_config = ConfigDict(frozen=True)
  collection: ClassVar[str] = "form_submissions"

  name: Optional[str] = None
  phone: Optional[str] = None
  email: Optional[str] = None
  form_type: FormType = "general"
  source: str = "form-submission"
  session_id: str
  timestamp: str = Field(default_factory=iso_now)

  def is_valid(self) -> bool:
    return bool(self.name) or bool(self.phone)


class Behavior(BaseModel):
  page_views: int = 0
  time_on_site: int = 0
  scroll_depth: int = 0
  form_interactions: int = 0
  button_clicks: int = 0


class VisitorSnapshot(BaseModel):
  """Heartbeat record. Contact fields never go here, they belong to form_submissions."""

  model_config = ConfigDict(frozen=True)
  collection: ClassVar[str] = "visitors"

  session_id: str
  timestamp: str = Field(default_factory=iso_now)
  page: str = "/"
  device_type: str = "desktop"
  browser: str = "Unknown"
  behavior: Behavior = Field(default_factory=Behavior)
