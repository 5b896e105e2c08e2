from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from koobings.auth import jwt_handler
from koobings.auth.dependencies import get_current_user, get_token_payload
from koobings.auth.passwords import verify_password
from koobings.auth.revocation import revoke_token
from koobings.database import get_db
from koobings.models.user import User

router = APIRouter(tags=['auth'])


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password')

    token = jwt_handler.create_access_token(
        subject=user.email,
        extra_claims={'role': user.role, 'business_id': user.business_id},
    )
    return TokenResponse(access_token=token)


@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)):
    jti = payload.get('jti')
    if not jti:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Token cannot be revoked')
    revoke_token(db, jti, jwt_handler.token_expiry(payload))


@router.get('/me')
def me(current_user: User = Depends(get_current_user)):
    return {'email': current_user.email, 'role': current_user.role, 'business_id': current_user.business_id}
