"""
Tests for the commission HTTP endpoints.

Covers:
- Role gating by the auth middleware and dependencies
- Manager offer/respond/history/summary/preview routes
- Admin list/pending/stats/respond/bulk routes
- Engine error to HTTP status mapping and audit records
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from marketplace.config import settings
from marketplace.models import AuditAction, AuditLog, UserRole

PANEL = "/api/panel/commissions"
ADMIN = "/api/admin/commissions"


async def _offer(client, service_id, percentage="15", **extra):
    response = await client.post(
        f"{PANEL}/offers",
        json={"service_id": service_id, "offered_percentage": percentage, **extra},
    )
    assert response.status_code == 201, response.text
    return response.json()


# ── access control ───────────────────────────────────────


class TestAccess:
    async def test_anonymous_rejected(self, app_client):
        client = await app_client()

        assert (await client.get(f"{PANEL}/offers")).status_code == 401
        assert (await client.get(ADMIN)).status_code == 401

    async def test_admin_cannot_use_panel(self, app_client, admin):
        client = await app_client(admin)

        response = await client.get(f"{PANEL}/offers")
        assert response.status_code == 403
        assert response.json()["detail"] == "Manager access required"

    async def test_manager_cannot_use_admin(self, app_client, manager):
        client = await app_client(manager)

        response = await client.get(ADMIN)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    async def test_disabled_account(self, app_client, make_user):
        ghost = await make_user("ghost", UserRole.MANAGER, is_active=False)
        client = await app_client(ghost)

        assert (await client.get(f"{PANEL}/offers")).status_code == 403

    async def test_invalid_token(self, app_client):
        client = await app_client()
        client.headers["Cookie"] = "access_token=garbage"

        assert (await client.get(f"{PANEL}/summary")).status_code == 401


# ── manager routes ───────────────────────────────────────


class TestManagerRoutes:
    async def test_submit_offer(self, app_client, manager, service):
        client = await app_client(manager)

        body = await _offer(client, service.id, "15", notes="launch price")

        assert body["status"] == "pending"
        assert body["type"] == "manager_offer"
        assert Decimal(body["offered_percentage"]) == Decimal("15")
        assert Decimal(body["effective_percentage"]) == Decimal("0")
        assert len(body["negotiation_history"]) == 1
        entry = body["negotiation_history"][0]
        assert entry["action"] == "offer"
        assert entry["by_user"] == manager.id
        assert entry["by_role"] == "manager"
        assert entry["note"] == "launch price"
        assert entry["at"]

    @pytest.mark.parametrize("percentage", ["0", "100.5"])
    async def test_out_of_range_is_400(self, app_client, manager, service, percentage):
        client = await app_client(manager)

        response = await client.post(
            f"{PANEL}/offers",
            json={"service_id": service.id, "offered_percentage": percentage},
        )
        assert response.status_code == 400

    async def test_foreign_service_is_403(self, app_client, other_manager, service):
        client = await app_client(other_manager)

        response = await client.post(
            f"{PANEL}/offers", json={"service_id": service.id, "offered_percentage": "15"}
        )
        assert response.status_code == 403

    async def test_missing_service_is_404(self, app_client, manager):
        client = await app_client(manager)

        response = await client.post(
            f"{PANEL}/offers", json={"service_id": 999, "offered_percentage": "15"}
        )
        assert response.status_code == 404

    async def test_list_and_get_own(self, app_client, manager, other_manager, service, make_service):
        client = await app_client(manager)
        created = await _offer(client, service.id)
        foreign_service = await make_service(other_manager)
        foreign = await _offer(await app_client(other_manager), foreign_service.id)

        listing = (await client.get(f"{PANEL}/offers")).json()
        assert listing["total"] == 1
        assert [item["id"] for item in listing["items"]] == [created["id"]]

        assert (await client.get(f"{PANEL}/offers/{created['id']}")).status_code == 200
        assert (await client.get(f"{PANEL}/offers/{foreign['id']}")).status_code == 403
        assert (await client.get(f"{PANEL}/offers/424242")).status_code == 404

    async def test_list_status_filter(self, app_client, manager, service):
        client = await app_client(manager)
        await _offer(client, service.id)

        pending = (await client.get(f"{PANEL}/offers", params={"status": "pending"})).json()
        accepted = (await client.get(f"{PANEL}/offers", params={"status": "accepted"})).json()

        assert pending["total"] == 1
        assert accepted["total"] == 0
        assert accepted["pages"] == 0

    async def test_respond_without_counter_is_409(self, app_client, manager, service):
        client = await app_client(manager)
        created = await _offer(client, service.id)

        response = await client.patch(
            f"{PANEL}/offers/{created['id']}/respond", json={"response": "accept"}
        )
        assert response.status_code == 409

    async def test_summary(self, app_client, manager, service):
        client = await app_client(manager)
        await _offer(client, service.id)

        summary = (await client.get(f"{PANEL}/summary")).json()

        assert summary["agreements"]["pending"]["count"] == 1
        assert summary["awaiting_response"] == 0
        assert summary["active_commissions"] == []

    async def test_preview(self, app_client, admin, manager, service):
        manager_client = await app_client(manager)
        created = await _offer(manager_client, service.id, "12.5")
        await (await app_client(admin)).patch(
            f"{ADMIN}/{created['id']}/respond", json={"action": "accept"}
        )

        response = await manager_client.get(
            f"{PANEL}/preview", params={"service_id": service.id, "amount": "250.00"}
        )

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["commission_percentage"]) == Decimal("12.5")
        assert Decimal(body["commission_amount"]) == Decimal("31.25")
        assert Decimal(body["net_amount"]) == Decimal("218.75")

    async def test_preview_foreign_service(self, app_client, other_manager, service):
        client = await app_client(other_manager)

        response = await client.get(
            f"{PANEL}/preview", params={"service_id": service.id, "amount": "10"}
        )
        assert response.status_code == 404


# ── full negotiation over HTTP ───────────────────────────


class TestNegotiationFlow:
    async def test_offer_counter_recounter_accept(self, app_client, db_session, admin, manager, service):
        manager_client = await app_client(manager)
        admin_client = await app_client(admin)
        commission_id = (await _offer(manager_client, service.id, "15"))["id"]

        response = await admin_client.patch(
            f"{ADMIN}/{commission_id}/respond",
            json={"action": "counter", "counter_percentage": "10", "notes": "market rate"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "negotiating"
        assert Decimal(response.json()["admin_counter_percentage"]) == Decimal("10")

        response = await manager_client.patch(
            f"{PANEL}/offers/{commission_id}/respond",
            json={"response": "counter", "counter_percentage": "12"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["admin_counter_percentage"] is None
        assert body["admin_notes"] is None

        response = await admin_client.patch(
            f"{ADMIN}/{commission_id}/respond", json={"action": "accept"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "accepted"
        assert Decimal(body["final_percentage"]) == Decimal("12")
        assert Decimal(body["effective_percentage"]) == Decimal("12")

        history = (await manager_client.get(f"{PANEL}/offers/{commission_id}/history")).json()
        assert history["status"] == "accepted"
        assert [e["action"] for e in history["entries"]] == [
            "offer",
            "admin_counter",
            "manager_counter",
            "admin_accept",
        ]
        admin_history = (await admin_client.get(f"{ADMIN}/{commission_id}/history")).json()
        assert admin_history == history

        response = await admin_client.patch(
            f"{ADMIN}/{commission_id}/respond", json={"action": "reject"}
        )
        assert response.status_code == 409

        audit = (
            await db_session.execute(select(AuditLog.action).order_by(AuditLog.id))
        ).scalars().all()
        assert audit == [
            AuditAction.SUBMIT_COMMISSION_OFFER,
            AuditAction.RESPOND_COMMISSION,
            AuditAction.RESPOND_COMMISSION,
            AuditAction.RESPOND_COMMISSION,
        ]

    async def test_counter_requires_percentage(self, app_client, admin, manager, service):
        commission_id = (await _offer(await app_client(manager), service.id))["id"]

        response = await (await app_client(admin)).patch(
            f"{ADMIN}/{commission_id}/respond", json={"action": "counter"}
        )
        assert response.status_code == 400

    async def test_unknown_action_is_422(self, app_client, admin, manager, service):
        commission_id = (await _offer(await app_client(manager), service.id))["id"]

        response = await (await app_client(admin)).patch(
            f"{ADMIN}/{commission_id}/respond", json={"action": "approve"}
        )
        assert response.status_code == 422


# ── admin routes ─────────────────────────────────────────


class TestAdminRoutes:
    async def _seed(self, app_client, manager, service, make_service):
        client = await app_client(manager)
        ids = [(await _offer(client, service.id, "10"))["id"]]
        for percentage in ("20", "30"):
            extra = await make_service(manager, f"Service {percentage}")
            ids.append((await _offer(client, extra.id, percentage))["id"])
        return ids

    async def test_list_filters_sort_and_stats(self, app_client, admin, manager, service, make_service):
        ids = await self._seed(app_client, manager, service, make_service)
        client = await app_client(admin)
        await client.patch(f"{ADMIN}/{ids[0]}/respond", json={"action": "reject"})

        body = (await client.get(ADMIN, params={"sort": "percentage_desc"})).json()
        assert [item["id"] for item in body["items"]] == list(reversed(ids))
        assert body["total"] == 3
        assert body["stats"]["pending"]["count"] == 2
        assert body["stats"]["rejected"]["count"] == 1

        ranged = (await client.get(ADMIN, params={"min_percentage": "15", "max_percentage": "25"})).json()
        assert [item["id"] for item in ranged["items"]] == [ids[1]]
        assert set(ranged["stats"]) == {"pending"}

        by_status = (await client.get(ADMIN, params={"status": "rejected"})).json()
        assert [item["id"] for item in by_status["items"]] == [ids[0]]

        by_service = (await client.get(ADMIN, params={"service_id": service.id})).json()
        assert by_service["total"] == 1

        paged = (await client.get(ADMIN, params={"per_page": 2, "page": 2, "sort": "percentage_asc"})).json()
        assert paged["pages"] == 2
        assert [item["id"] for item in paged["items"]] == [ids[2]]

    async def test_invalid_sort(self, app_client, admin):
        client = await app_client(admin)

        assert (await client.get(ADMIN, params={"sort": "random"})).status_code == 422

    async def test_pending(self, app_client, admin, manager, service, make_service):
        ids = await self._seed(app_client, manager, service, make_service)
        client = await app_client(admin)
        await client.patch(
            f"{ADMIN}/{ids[1]}/respond", json={"action": "counter", "counter_percentage": "5"}
        )

        pending = (await client.get(f"{ADMIN}/pending")).json()

        assert [item["id"] for item in pending] == [ids[0], ids[2]]

    async def test_stats(self, app_client, admin, manager, service, make_service):
        await self._seed(app_client, manager, service, make_service)
        client = await app_client(admin)

        body = (await client.get(f"{ADMIN}/stats")).json()

        assert body["totals"]["total"] == 3
        assert body["totals"]["avg_percentage"] == 20.0
        assert body["by_status"]["pending"]["count"] == 3
        assert sum(m["count"] for m in body["by_month"]) == 3

        future = (await client.get(f"{ADMIN}/stats", params={"date_from": "2999-01-01T00:00:00"})).json()
        assert future["totals"]["total"] == 0

    async def test_get_missing(self, app_client, admin):
        client = await app_client(admin)

        assert (await client.get(f"{ADMIN}/999")).status_code == 404
        assert (await client.get(f"{ADMIN}/999/history")).status_code == 404


class TestBulkRoute:
    async def test_bulk_accept_reports_each_item(self, app_client, db_session, admin, manager, service, make_service):
        manager_client = await app_client(manager)
        first = (await _offer(manager_client, service.id))["id"]
        extra = await make_service(manager)
        second = (await _offer(manager_client, extra.id))["id"]
        client = await app_client(admin)
        await client.patch(f"{ADMIN}/{second}/respond", json={"action": "reject"})

        response = await client.patch(
            f"{ADMIN}/bulk", json={"commission_ids": [first, second, 777], "action": "accept"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 1
        assert body["failed"] == 2
        assert [(r["id"], r["success"]) for r in body["results"]] == [
            (first, True),
            (second, False),
            (777, False),
        ]
        assert "finalized" in body["results"][1]["error"]

        bulk_audit = (
            await db_session.execute(
                select(AuditLog).where(AuditLog.action == AuditAction.BULK_RESPOND_COMMISSION)
            )
        ).scalar_one()
        assert bulk_audit.user_id == admin.id
        assert bulk_audit.target_type == "commission"
        assert bulk_audit.ip_address == "127.0.0.1"
        assert bulk_audit.action_metadata["succeeded"] == 1

    async def test_counter_without_percentage_is_422(self, app_client, admin):
        client = await app_client(admin)

        response = await client.patch(
            f"{ADMIN}/bulk", json={"commission_ids": [1, 2], "action": "counter"}
        )
        assert response.status_code == 422

    async def test_empty_batch_is_422(self, app_client, admin):
        client = await app_client(admin)

        response = await client.patch(f"{ADMIN}/bulk", json={"commission_ids": [], "action": "accept"})
        assert response.status_code == 422

    async def test_batch_size_cap(self, app_client, admin, monkeypatch):
        monkeypatch.setattr(settings, "bulk_respond_max_items", 2)
        client = await app_client(admin)

        response = await client.patch(
            f"{ADMIN}/bulk", json={"commission_ids": [1, 2, 3], "action": "accept"}
        )
        assert response.status_code == 400
