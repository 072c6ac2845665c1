"""User profile returned by the identity provider's user-info endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Profile(BaseModel):
    """Standard OIDC claims for an authenticated user.

    ``subject_id`` is filled in by the login handler as
    ``<service>_<sub>``. It is never read from the provider and never
    serialized.
    """

    model_config = ConfigDict(extra="ignore")

    sub: str = ""
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    profile: str = ""
    picture: str = ""
    email: str = ""
    email_verified: bool = False
    gender: str = ""
    locale: str = ""
    subject_id: str = Field(default="", exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_subject(cls, data: Any) -> Any:
        # GitHub reports a numeric ``id`` instead of ``sub``.
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None and k != "subject_id"}
        if not data.get("sub") and "id" in data:
            data["sub"] = data["id"]
        if "sub" in data:
            data["sub"] = str(data["sub"])
        return data
