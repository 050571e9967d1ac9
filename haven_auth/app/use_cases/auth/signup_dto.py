"""
Signup Use Case DTOs

- SignupCommand: input to the use case (validated business intent)
- The use case answers with AuthTokensResponse
"""

from pydantic import BaseModel


class SignupCommand(BaseModel):
    """
    Signup command - represents validated signup intent

    Created by API layer after request validation passes.
    """

    email: str
    password: str
    organization_name: str
