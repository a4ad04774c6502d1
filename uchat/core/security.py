from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
import jwt
from ..core.config import settings
from ..core.exceptions import InvalidTokenException, TokenExpiredException

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

def hash_access_secret(secret: str) -> str:
    """
    Hash a user password or a room password using bcrypt.
    """
    return pwd_context.hash(secret)

def verify_access_secret(plain_secret: str, hashed_secret: str) -> bool:
    """
    Verify a secret against its bcrypt hash. The comparison is constant-time.
    """
    if not plain_secret or not hashed_secret:
        return False
    return pwd_context.verify(plain_secret, hashed_secret)

# User credentials and room passwords share the same scheme.
hash_password = hash_access_secret
verify_password = verify_access_secret

def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing user data (e.g., user_id, username)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expiry_hours)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt

def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload dictionary

    Raises:
        TokenExpiredException: If the token is past its expiry
        InvalidTokenException: If the token is malformed or badly signed
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.PyJWTError:
        raise InvalidTokenException(detail="Invalid authentication credentials")
