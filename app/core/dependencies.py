"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import SupabaseClient, get_supabase
from app.modules.auth.service import AuthService
from app.core.errors import InsufficientRole, NotMember
from app.core.permissions import PermissionEvaluator, SupabasePermissionRepository
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_access_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Resolve the caller from their JWT token"""
    return auth_service.get_current_user(token)


def get_user_supabase(token: str = Depends(get_access_token)) -> Client:
    """Supabase client acting as the caller, so row-level security applies to every query"""
    return SupabaseClient.get_user_client(token)


def get_permission_evaluator(supabase: Client = Depends(get_user_supabase)) -> PermissionEvaluator:
    return PermissionEvaluator(SupabasePermissionRepository(supabase))


def require_group_access(group_id: str, user_data: Dict[str, Any], evaluator: PermissionEvaluator) -> None:
    """Raise unless the caller is a member of the group or a system admin"""
    if not evaluator.can_access_group(group_id, user_data["id"]):
        raise NotMember()


def require_group_manager(
    group_id: str,
    user_data: Dict[str, Any],
    evaluator: PermissionEvaluator,
    failure_message: str = "Only group admins can perform this action"
) -> None:
    """Raise unless the caller is an admin of the group or a system admin"""
    if not evaluator.can_manage_group(group_id, user_data["id"]):
        raise InsufficientRole(failure_message)


def require_system_admin(failure_message: str = "System admin privileges required"):
    """Factory function to create a system admin check dependency"""
    def check_system_admin(
        user_data: Dict[str, Any] = Depends(get_current_user),
        evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
    ) -> Dict[str, Any]:
        evaluator.require_system_admin(user_data["id"], failure_message)
        return user_data
    return check_system_admin
