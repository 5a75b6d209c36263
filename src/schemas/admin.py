from pydantic import BaseModel, Field


class AdminAccess(BaseModel):
    authorized: bool = Field(..., description="Whether the session belongs to the admin account")
    message: str = Field(..., description="Schema setup outcome")


class ImageUploadOut(BaseModel):
    url: str = Field(..., description="Public URL of the uploaded image")
