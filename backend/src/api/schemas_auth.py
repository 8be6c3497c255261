from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class AuthRequestBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_body(cls, body: Any):
        """Build from a loosely shaped JSON body. Non-string fields count as missing."""
        if not isinstance(body, dict):
            body = {}
        return cls.model_validate({key: value for key, value in body.items() if isinstance(value, str)})


class CredentialsIn(AuthRequestBase):
    email: Optional[str] = None
    password: Optional[str] = None
    redirect_to: Optional[str] = Field(None, alias="redirectTo")


class MagicLinkIn(AuthRequestBase):
    email: Optional[str] = None
    redirect_to: Optional[str] = Field(None, alias="redirectTo")
    purpose: Optional[str] = None


class RegisterEmailIn(AuthRequestBase):
    email: Optional[str] = None
