"""Audit trail for user-visible mutations."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from foodkeeper.shared.models import AuditLog

logger = logging.getLogger(__name__)


async def record_audit(
    session: AsyncSession,
    user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit entry to the session (committed with the caller's changes).

    Args:
        session: Database session
        user_id: Acting user, None for system actions
        action: Verb such as "create", "update", "delete", "login"
        entity_type: Table-ish name of the affected entity
        entity_id: Primary key of the affected entity
        old_values: Values before the change
        new_values: Values after the change

    Returns:
        AuditLog: Pending audit row
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=old_values,
        new_values=new_values,
    )
    session.add(entry)

    logger.info(f"Audit: user={user_id} {action} {entity_type}#{entity_id}")

    return entry
