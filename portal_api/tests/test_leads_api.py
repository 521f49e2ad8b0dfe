import pytest
from sqlalchemy.future import select

from portal_api.core.enums import AuditAction, LeadStatus, ServiceCategory
from portal_api.models.audit import Audit
from portal_api.models.lead import Lead


def lead_payload(**overrides):
    data = {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@navy.example.com",
        "company": "Navy",
        "service_category": "multipage_site",
        "description": "Five page site with a contact form",
    }
    data.update(overrides)
    return data


@pytest.mark.integration
class TestLeads:

    async def test_create_lead(self, test_client, admin_headers):
        response = await test_client.post("/leads/", json=lead_payload(), headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] is not None
        assert data["status"] == "new"
        assert data["service_category"] == "multipage_site"

    @pytest.mark.audit
    async def test_create_lead_is_audited(self, test_client, session_factory, admin_headers, admin_user):
        await test_client.post("/leads/", json=lead_payload(), headers=admin_headers)

        async with session_factory() as db:
            res = await db.execute(select(Audit).where(Audit.endpoint == AuditAction.CREATE_LEAD.value))
            audit = res.scalars().first()
        assert audit is not None
        assert audit.user_id == admin_user.id
        assert audit.payload_hash

    @pytest.mark.idempotency
    async def test_create_lead_idempotent(self, test_client, session_factory, admin_headers):
        headers = {**admin_headers, "Idempotency-Key": "lead-grace"}
        first = await test_client.post("/leads/", json=lead_payload(), headers=headers)
        second = await test_client.post("/leads/", json=lead_payload(), headers=headers)

        assert first.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        async with session_factory() as db:
            assert len((await db.execute(select(Lead))).scalars().all()) == 1

    async def test_converted_status_is_rejected(self, test_client, admin_headers, create_lead_factory):
        response = await test_client.post("/leads/", json=lead_payload(status="converted"), headers=admin_headers)
        assert response.status_code == 400

        lead = await create_lead_factory()
        response = await test_client.put(f"/leads/{lead.id}", json={"status": "converted"}, headers=admin_headers)
        assert response.status_code == 400

    async def test_invalid_email_is_rejected(self, test_client, admin_headers):
        response = await test_client.post("/leads/", json=lead_payload(email="not-an-email"), headers=admin_headers)
        assert response.status_code == 422

    async def test_list_filters(self, test_client, admin_headers, create_lead_factory):
        await create_lead_factory()
        await create_lead_factory(email="other@b.com", service_category=ServiceCategory.TRAINING, status=LeadStatus.NEW)

        response = await test_client.get("/leads/?service_category=training", headers=admin_headers)
        assert response.status_code == 200
        assert [lead["email"] for lead in response.json()] == ["other@b.com"]

        response = await test_client.get("/leads/?status=qualified", headers=admin_headers)
        assert [lead["email"] for lead in response.json()] == ["a@b.com"]

    async def test_update_lead(self, test_client, admin_headers, create_lead_factory):
        lead = await create_lead_factory()
        response = await test_client.put(
            f"/leads/{lead.id}", json={"status": "negotiating", "city": "Paris"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "negotiating"
        assert response.json()["city"] == "Paris"
        assert response.json()["company"] == "Acme"

    async def test_delete_and_missing_lead(self, test_client, admin_headers, create_lead_factory):
        lead = await create_lead_factory()
        response = await test_client.delete(f"/leads/{lead.id}", headers=admin_headers)
        assert response.status_code == 200

        response = await test_client.get(f"/leads/{lead.id}", headers=admin_headers)
        assert response.status_code == 404

    async def test_customers_cannot_read_leads(self, test_client, customer_headers):
        response = await test_client.get("/leads/", headers=customer_headers)
        assert response.status_code == 403

    async def test_blank_names_are_rejected(self, test_client, admin_headers, create_lead_factory):
        response = await test_client.post("/leads/", json=lead_payload(first_name="   "), headers=admin_headers)
        assert response.status_code == 422

        lead = await create_lead_factory()
        response = await test_client.put(f"/leads/{lead.id}", json={"last_name": ""}, headers=admin_headers)
        assert response.status_code == 422
