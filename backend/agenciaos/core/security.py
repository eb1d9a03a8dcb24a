# agenciaos/core/security.py

from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError, BaseModel
from typing import Annotated, Optional
from loguru import logger

from agenciaos.core.config import settings

class TokenData(BaseModel):
    # Claims que o resto da app usa
    email: str # claim 'sub'
    user_id: str # claim 'uid'
    agency_id: Optional[str] = None
    role: Optional[str] = None

# Contexto para Hashing de Senhas (Bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")

CredentialsException = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)

# --- Senhas ---

def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verifica se a senha plana corresponde ao hash armazenado."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        # Hash corrompido ou de esquema desconhecido
        logger.error(f"Error verifying password (hash might be invalid): {e}")
        return False

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# --- JWT ---

def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Cria um token JWT com exp/iat/nbf. 'sub' é obrigatório."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now, "nbf": now})

    subject = to_encode.get("sub")
    if not subject:
        logger.critical("FATAL: Attempted to create JWT token without 'sub' (subject) claim.")
        raise ValueError("Missing 'sub' claim in token data for JWT creation")

    try:
        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        logger.info(f"Access token created for subject: {subject}")
        return encoded_jwt
    except Exception as e:
        logger.exception(f"Critical error encoding JWT token for subject '{subject}': {e}")
        raise RuntimeError(f"Could not create access token: {e}") from e

def decode_access_token(token: str) -> TokenData:
    """Decodifica e valida o token. Levanta HTTPException 401 em qualquer falha."""
    log = logger.bind(service="AuthTokenValidation")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        if not payload.get("sub") or not payload.get("uid"):
            log.warning("Token validation failed: 'sub'/'uid' claim missing.")
            raise CredentialsException
        return TokenData(
            email=payload["sub"],
            user_id=payload["uid"],
            agency_id=payload.get("agency_id"),
            role=payload.get("role"),
        )
    except HTTPException:
        raise
    except jwt.ExpiredSignatureError:
        log.warning("Token validation failed: Signature has expired.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": 'Bearer error="invalid_token"'}
        )
    except JWTError as e:
        log.warning(f"Invalid JWT token format or signature: {e}")
        raise CredentialsException from e
    except ValidationError as e:
        log.warning(f"Token data validation error: {e}")
        raise CredentialsException from e

async def get_current_user_from_token(token: Annotated[str, Depends(oauth2_scheme)]) -> TokenData:
    """Dependência FastAPI: payload do Bearer token da requisição."""
    return decode_access_token(token)

CurrentToken = Annotated[TokenData, Depends(get_current_user_from_token)]
