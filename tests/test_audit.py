"""Tests for the audit log."""

import json
from datetime import datetime, timezone

from yieldvault.audit import AuditEvent, AuditLog
from yieldvault.deployment import Deployment
from yieldvault.types import Identity


class TestAuditEvent:
    def test_to_dict_serializes_timestamp(self) -> None:
        event = AuditEvent(
            event_type="deposit",
            message="Deposited 10",
            actor="alice",
            timestamp=datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
            context={"amount": 10},
        )
        data = event.to_dict()
        assert data["timestamp"] == "2024-01-15T12:00:00+00:00"
        assert data["actor"] == "alice"
        assert data["context"] == {"amount": 10}
        assert data["severity"] == "info"

    def test_timestamp_is_utc(self) -> None:
        event = AuditEvent(event_type="pause", message="Paused")
        assert event.timestamp.tzinfo == timezone.utc
        assert event.actor is None


class TestAuditLog:
    def test_record_and_filter(self) -> None:
        audit = AuditLog()
        audit.record("deposit", "Deposited 10", actor="alice", context={"amount": 10})
        audit.record("withdraw", "Withdrew 5", actor="bob")
        audit.record_rejection("deposit", "PAUSED", "vault is paused", actor="alice")

        assert len(audit.events) == 3
        assert len(audit.get_events(event_type="deposit")) == 1
        assert len(audit.get_events(actor="alice")) == 2
        warnings = audit.get_events(severity="warning")
        assert len(warnings) == 1
        assert warnings[0].context["code"] == "PAUSED"
        assert warnings[0].message == "deposit rejected (PAUSED): vault is paused"

    def test_clear(self) -> None:
        audit = AuditLog()
        audit.record("pause", "Paused")
        audit.clear()
        assert audit.events == []

    def test_to_json(self) -> None:
        audit = AuditLog()
        audit.record("virtual_yield", "Virtual yield +5", actor="keeper", context={"delta": 5})
        document = json.loads(audit.to_json())
        assert document["metadata"]["row_count"] == 1
        assert document["data"][0]["event_type"] == "virtual_yield"
        assert document["data"][0]["context"]["delta"] == 5
        assert document["data"][0]["actor"] == "keeper"


class TestDeploymentAudit:
    """Tests that one deployment's components share a single audit trail."""

    def test_vault_flow_is_audited(self, deployment: Deployment, deployer: Identity, alice: Identity) -> None:
        deployment.vault.deposit(alice, 1_000)
        deployment.vault.update_virtual_yield(deployer, 10)
        deployment.roles.set_paused(deployer, True)
        deployment.vault.withdraw(alice, 1_000)

        audit = deployment.audit
        assert [e.event_type for e in audit.get_events(actor=str(alice))] == ["deposit", "rejected"]
        assert len(audit.get_events(event_type="virtual_yield")) == 1
        assert len(audit.get_events(event_type="pause")) == 1

        rejected = audit.get_events(event_type="rejected")[0]
        assert rejected.context["operation"] == "withdraw"
        assert rejected.context["code"] == "PAUSED"
