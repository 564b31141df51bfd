"""Extracts contact details and the ordered role list from a base résumé."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ats_tailor.clients.llm_client import ProviderAdapter, ResponseSchema
from ats_tailor.errors import MalformedResponse
from ats_tailor.models.resume import ContactInformation, SourceProfile
from ats_tailor.pipeline.normalize import as_str

logger = logging.getLogger(__name__)

# Names models reach for when they cannot find the real one.
PLACEHOLDER_NAMES = {"john doe", "jane doe", "professional name", "your name", "candidate name"}

SOURCE_PROFILE_SCHEMA = ResponseSchema(name="SourceProfile", required_keys=("contact", "roles"))

SYSTEM_PROMPT = """\
You extract facts from résumés. Return only information that is explicitly
written in the document; leave a field empty rather than guessing.

Respond with JSON only, in this shape:
{
  "contact": {
    "name": "", "title": "", "phone": "", "email": "",
    "city": "", "state": "", "linkedin": ""
  },
  "roles": [
    {"title": "job title as written", "company": "employer as written", "duration": "dates as written"}
  ]
}

List roles in the order they appear in the résumé, most recent first.
Copy titles, employers and dates verbatim."""


class ProfileExtractor:
    def __init__(self, provider: ProviderAdapter):
        self.provider = provider

    async def extract(self, resume_text: str) -> SourceProfile:
        prompt = f"""Extract the contact details and work history from this résumé.

---
{resume_text}
---"""
        data = await self.provider.generate(SYSTEM_PROMPT, prompt, SOURCE_PROFILE_SCHEMA)
        return self.normalize(data)

    def normalize(self, data: dict) -> SourceProfile:
        raw_contact = data.get("contact")
        if not isinstance(raw_contact, dict):
            raw_contact = {}
        contact = {field: as_str(raw_contact.get(field)) for field in ContactInformation.model_fields}
        if contact["name"].lower() in PLACEHOLDER_NAMES:
            logger.info("Dropping placeholder contact name %r", contact["name"])
            contact["name"] = ""

        roles = []
        raw_roles = data.get("roles")
        for raw in raw_roles if isinstance(raw_roles, list) else []:
            if not isinstance(raw, dict):
                continue
            title = as_str(raw.get("title"))
            company = as_str(raw.get("company"))
            if not (title or company):
                continue
            roles.append({"title": title, "company": company, "duration": as_str(raw.get("duration"))})

        try:
            return SourceProfile.model_validate({"contact": contact, "roles": roles})
        except ValidationError as exc:
            raise MalformedResponse(f"SourceProfile failed validation: {exc}") from exc
