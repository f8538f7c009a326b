"""
Audit logging service for tracking security events and sharing changes.

Audit entries are added to the caller's unit of work and become durable
together with the operation they describe.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from tracker_backend.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PASSWORD_REHASHED = "PASSWORD_REHASHED"

    USER_REGISTERED = "USER_REGISTERED"
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    ROLE_CHANGED = "ROLE_CHANGED"

    DEVICE_CREATED = "DEVICE_CREATED"
    DEVICE_UPDATED = "DEVICE_UPDATED"
    DEVICE_DETACHED = "DEVICE_DETACHED"
    DEVICE_DELETED = "DEVICE_DELETED"
    DEVICE_SHARED = "DEVICE_SHARED"

    GEOFENCE_CREATED = "GEOFENCE_CREATED"
    GEOFENCE_UPDATED = "GEOFENCE_UPDATED"
    GEOFENCE_DETACHED = "GEOFENCE_DETACHED"
    GEOFENCE_DELETED = "GEOFENCE_DELETED"
    GEOFENCE_SHARED = "GEOFENCE_SHARED"

    SETTINGS_UPDATED = "SETTINGS_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_login: Optional[str] = None,
    target_user_id: Optional[int] = None,
    target_login: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Add an event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_login: Login of actor
        target_user_id: ID of user being acted upon (if applicable)
        target_login: Login of target
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance (flushed, not committed)
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_login=actor_login,
        action=action,
        target_user_id=target_user_id,
        target_login=target_login,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def log_caller_action(db: AsyncSession, caller, action: str, target=None,
                            metadata: Optional[Dict[str, Any]] = None) -> AuditLog:
    """Log an action performed by `caller`, optionally against a target user."""
    return await log_event(
        db=db,
        action=action,
        actor_id=caller.id if caller else None,
        actor_login=caller.login if caller else None,
        target_user_id=target.id if target else None,
        target_login=target.login if target else None,
        metadata=metadata
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    login: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_login=login,
        ip_address=ip_address,
        metadata=metadata
    )
