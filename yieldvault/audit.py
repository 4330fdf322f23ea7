"""Audit logging for vault state transitions.

Provides a structured event format for every role change, registry update,
deposit, withdrawal, yield adjustment and rejection, with full context for
replay and debugging.

All timestamps use timezone-aware UTC datetimes for consistency.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

EventType = Literal[
    "role_change",
    "pause",
    "strategy_update",
    "deposit",
    "withdraw",
    "virtual_yield",
    "config_change",
    "strategy_change_requested",
    "fees_collected",
    "rejected",
]

Severity = Literal["debug", "info", "warning", "error"]


@dataclass(frozen=True)
class AuditEvent:
    """One recorded vault transition or rejection.

    `actor` is the identity that invoked the operation, if any.
    """

    event_type: EventType
    message: str
    actor: Optional[str] = None
    severity: Severity = "info"
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "message": self.message,
            "actor": self.actor,
            "severity": self.severity,
            "context": dict(self.context),
            "timestamp": self.timestamp.isoformat(),
        }


class AuditLog:
    """In-memory audit log shared by the components of one deployment."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        self.events.append(event)

    def record(
        self,
        event_type: EventType,
        message: str,
        *,
        actor: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record a successful transition."""
        self.log(
            AuditEvent(
                event_type=event_type,
                message=message,
                actor=actor,
                context=dict(context or {}),
            )
        )

    def record_rejection(
        self,
        operation: str,
        code: str,
        reason: str,
        *,
        actor: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record a rejected operation with its error code name."""
        self.log(
            AuditEvent(
                event_type="rejected",
                message=f"{operation} rejected ({code}): {reason}",
                actor=actor,
                severity="warning",
                context={"operation": operation, "code": code, "reason": reason, **(context or {})},
            )
        )

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        severity: Optional[Severity] = None,
        actor: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get filtered audit events."""
        return [
            e
            for e in self.events
            if (event_type is None or e.event_type == event_type)
            and (severity is None or e.severity == severity)
            and (actor is None or e.actor == actor)
        ]

    def clear(self) -> None:
        """Clear all events (for testing)."""
        self.events.clear()

    def to_json_list(self) -> list[dict[str, Any]]:
        """Export all events as JSON-serializable list."""
        return [event.to_dict() for event in self.events]

    def to_json(self) -> str:
        """Export all events as a JSON document with metadata."""
        output = {
            "metadata": {
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "row_count": len(self.events),
            },
            "data": self.to_json_list(),
        }
        return json.dumps(output, indent=2, default=str)
