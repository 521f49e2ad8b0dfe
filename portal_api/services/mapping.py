"""Lead -> Customer / Engagement field mapping.

Every function here is pure and total: a lead with any combination of
missing optional fields maps without raising.
"""
from typing import Optional

from portal_api.core.enums import ServiceCategory
from portal_api.models.lead import Lead
from portal_api.schemas.conversion import CredentialDefaults, EngagementDefaults

SERVICE_CATEGORY_LABELS = {
    ServiceCategory.LANDING_PAGE: "Landing page build",
    ServiceCategory.MULTIPAGE_SITE: "Multi-page website build",
    ServiceCategory.SITE_REDESIGN: "Website redesign",
    ServiceCategory.DESIGN_INTEGRATION: "Design integration",
    ServiceCategory.UX_UI_DESIGN: "UX/UI design",
    ServiceCategory.TRAINING: "Training",
    ServiceCategory.PARTNERSHIP: "Partnership",
    ServiceCategory.OTHER: "Other",
}
FALLBACK_LABEL = "Project"

CUSTOMER_FIELDS = ("first_name", "last_name", "email", "phone", "company", "city")


def _blank_to_none(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def service_category_label(category) -> str:
    if category is None:
        return FALLBACK_LABEL
    try:
        return SERVICE_CATEGORY_LABELS[ServiceCategory(category)]
    except ValueError:
        return str(category) or FALLBACK_LABEL


def lead_display_name(lead: Lead) -> Optional[str]:
    """Company when known, else the person's name, else the email."""
    company = _blank_to_none(lead.company)
    if company:
        return company
    name = " ".join(
        part for part in (_blank_to_none(lead.first_name), _blank_to_none(lead.last_name)) if part
    )
    return name or _blank_to_none(lead.email)


def engagement_defaults(lead: Lead) -> EngagementDefaults:
    label = service_category_label(lead.service_category)
    who = lead_display_name(lead)
    title = f"{label} – {who}" if who else label
    return EngagementDefaults(title=title, description=lead.description)


def credential_defaults(lead: Lead) -> CredentialDefaults:
    return CredentialDefaults(email=_blank_to_none(lead.email))


def customer_fields_from_lead(lead: Lead) -> dict:
    """Identity fields copied verbatim; blanks become None, never ''."""
    return {name: _blank_to_none(getattr(lead, name, None)) for name in CUSTOMER_FIELDS}
