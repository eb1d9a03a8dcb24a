# agenciaos/models/auth.py

from pydantic import BaseModel, Field, ConfigDict

class Token(BaseModel):
    """Schema da resposta do token de acesso JWT."""
    access_token: str = Field(..., description="O token JWT de acesso.")
    token_type: str = Field(default="bearer", description="Tipo do token (sempre 'bearer').")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.eyJzdWIiOiJkb25vQGFnZW5jaWEuY29tIn0.abcdef...",
                "token_type": "bearer"
            }
        }
    )
