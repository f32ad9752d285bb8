"""
Audit logging for clinical record changes.

Every create, replace, status change and delete of a prescription or an
inventory item is logged with what changed and when, for compliance and
investigation.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for record lifecycle events."""

    @staticmethod
    def log_action(
        action: str,  # "create", "replace", "status", "delete"
        resource_type: str,  # "prescription", "inventory", "patient"
        resource_id: Any,
        actor: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a record lifecycle action.

        Usage:
            AuditLog.log_action("create", "prescription", 12)
            AuditLog.log_action("delete", "inventory", 7, changes={"sku": "PHARM-8K2QZ1"})
        """
        log_entry = {
            "timestamp": _utcnow_iso(),
            "event_type": f"{resource_type}.{action}",
            "resource_id": resource_id,
        }

        if actor:
            log_entry["actor"] = actor
        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_rejected(
        action: str,
        resource_type: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a refused write (validation failure, duplicate key).

        Usage:
            AuditLog.log_rejected("create", "inventory", "conflict", {"sku": "PHARM-1"})
        """
        log_entry = {
            "timestamp": _utcnow_iso(),
            "event_severity": "WARNING",
            "event_type": f"{resource_type}.{action}.rejected",
            "reason": reason,
        }

        if details:
            log_entry["details"] = details

        audit_logger.warning(json.dumps(log_entry, default=str))
