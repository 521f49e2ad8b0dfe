from typing import Optional
from portal_api.models.lead import Lead
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.schemas.lead import LeadOut
from portal_api.schemas.customer import CustomerOut, EngagementOut
from portal_api.schemas.conversion import ConversionStateOut, IssuedCredential
from portal_api.services.conversion import ConversionSession, StateView


def build_lead_response(lead: Lead) -> LeadOut:
    return LeadOut(
        id=lead.id,
        first_name=lead.first_name,
        last_name=lead.last_name,
        email=lead.email,
        phone=lead.phone,
        company=lead.company,
        city=lead.city,
        service_category=lead.service_category,
        budget_range=lead.budget_range,
        desired_deadline=lead.desired_deadline,
        description=lead.description,
        status=lead.status,
        source=lead.source,
        internal_notes=lead.internal_notes,
        created_at=lead.created_at,
        updated_at=lead.updated_at,
    )


def build_lead_response_list(leads: list) -> list:
    return [build_lead_response(lead) for lead in leads]


def build_customer_response(customer: Optional[Customer]) -> Optional[CustomerOut]:
    if customer is None:
        return None
    return CustomerOut(
        id=customer.id,
        first_name=customer.first_name,
        last_name=customer.last_name,
        email=customer.email,
        phone=customer.phone,
        company=customer.company,
        city=customer.city,
        created_at=customer.created_at,
    )


def build_engagement_response(engagement: Optional[Engagement]) -> Optional[EngagementOut]:
    if engagement is None:
        return None
    return EngagementOut(
        id=engagement.id,
        customer_id=engagement.customer_id,
        title=engagement.title,
        description=engagement.description,
        status=engagement.status,
        start_date=engagement.start_date,
        target_end_date=engagement.target_end_date,
        actual_end_date=engagement.actual_end_date,
        budget=engagement.budget,
        created_at=engagement.created_at,
    )


def build_conversion_response(session: ConversionSession, view: StateView, error=None) -> ConversionStateOut:
    payload = view.payload
    credential = payload.get("credential")
    return ConversionStateOut(
        session_id=session.id,
        state=view.state,
        lead=build_lead_response(payload["lead"]),
        customer=build_customer_response(payload["customer"]),
        engagement=build_engagement_response(payload["engagement"]),
        engagement_defaults=payload.get("engagement_defaults"),
        credential_defaults=payload.get("credential_defaults"),
        credential=IssuedCredential(**credential) if credential and credential.get("password") else None,
        credential_provisioned=payload.get("credential_provisioned", credential is not None),
        in_flight=payload["in_flight"],
        error=error if error is not None else payload["error"],
        opened_at=session.opened_at,
        updated_at=session.updated_at,
    )
