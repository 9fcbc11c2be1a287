import hashlib
import logging
import time
from supabase import Client
from app.modules.auth.schemas import LoginRequest, SignUpRequest, TokenResponse, SignUpResponse
from fastapi import HTTPException
from app.core.errors import AuthenticationRequired
from typing import Dict, Any

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token).
# Only identity is cached here; group and system roles are always read fresh.
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def sign_up(self, sign_up_data: SignUpRequest) -> SignUpResponse:
        """Register a new user using Supabase Auth. Email confirmation is handled by Supabase."""
        try:
            user_metadata = {}
            if sign_up_data.full_name:
                user_metadata["full_name"] = sign_up_data.full_name

            auth_response = self.supabase.auth.sign_up({
                "email": sign_up_data.email,
                "password": sign_up_data.password,
                "options": {
                    "data": user_metadata
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to sign up")

            # No session means Supabase is waiting for the email confirmation link
            confirmation_required = auth_response.session is None
            return SignUpResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or sign_up_data.email,
                confirmation_required=confirmation_required,
                message="Check your email to confirm your account" if confirmation_required
                else "User registered successfully"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            logger.error(f"Sign up failed for {sign_up_data.email}: {error_message}")
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=error_message or "Failed to sign up")

    def sign_in(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return TokenResponse(
                access_token=auth_response.session.access_token,
                refresh_token=auth_response.session.refresh_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            if "not confirmed" in error_message.lower():
                raise HTTPException(status_code=401, detail="Email not confirmed")
            raise HTTPException(status_code=500, detail=error_message or "Failed to sign in")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise AuthenticationRequired()
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except AuthenticationRequired:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise AuthenticationRequired("Invalid or expired token")
            raise AuthenticationRequired()

    def sign_out(self, token: str) -> bool:
        """Sign out user using Supabase Auth and drop the cached identity for the token"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            # Supabase access tokens are stateless JWTs; revoking the session on the server side
            # invalidates the refresh token, the access token lapses on its own
            self.supabase.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            return False
