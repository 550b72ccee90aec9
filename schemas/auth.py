from typing import Optional

from pydantic import BaseModel, Field, model_validator


class OtpRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def _one_channel(self) -> "OtpRequest":
        if not (self.email or self.phone):
            raise ValueError("email or phone is required")
        return self


class OtpVerify(OtpRequest):
    token: str = Field(..., min_length=6, max_length=6)


class PasswordSignIn(BaseModel):
    email: str
    password: str


class SignUpRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=6)
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")

    model_config = {"populate_by_name": True}


class PasswordChange(BaseModel):
    password: str = Field(..., min_length=6)


class InviteRequest(BaseModel):
    email: str
