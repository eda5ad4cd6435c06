"""
RecipeShare Backend — Authentication Schemas
"""

import uuid
from typing import Optional

from pydantic import Field

from recipeshare.schemas.common import CamelModel


class Credentials(CamelModel):
    """
    Body of POST /api/signup and POST /api/login.

    Both fields are optional at the schema level so that a missing value is
    reported as the API's own 400 "Username and password are required".
    Username length is checked by AuthService, one message for both bounds.
    """
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None, max_length=128)


class LoginResponse(CamelModel):
    token: str = Field(description="Signed JWT; send as 'Authorization: Bearer <token>'")
    user_id: uuid.UUID = Field(description="ID of the authenticated user")
