from pydantic import BaseModel


class RegisterRequest(BaseModel):
    # Emptiness and password strength are checked by the auth service
    username: str = ""
    display_name: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class IdentityResponse(BaseModel):
    user_id: int
    username: str
    display_name: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: IdentityResponse
    redirect_to: str
