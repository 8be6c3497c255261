from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class JobEntryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    status: Optional[str] = None
    metadata: Optional[dict] = None
    job: Optional[dict] = None
    hiring: Optional[dict] = None
    salary: Optional[dict] = None
    application_form: Optional[dict] = Field(None, alias="applicationForm")


class ApplicationEntryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    country_code: Optional[str] = Field(None, alias="countryCode")
    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth")
    domicile: Optional[str] = None
    gender: Optional[str] = None
    linkedin_url: Optional[str] = Field(None, alias="linkedinUrl")
    photo_profile: Optional[str] = Field(None, alias="photoProfile")
