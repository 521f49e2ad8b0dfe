import pytest

from portal_api.core.enums import ServiceCategory
from portal_api.models.lead import Lead
from portal_api.services.mapping import (
    credential_defaults,
    customer_fields_from_lead,
    engagement_defaults,
    service_category_label,
)


@pytest.mark.unit
class TestEngagementDefaults:

    def test_title_uses_category_label_and_company(self):
        lead = Lead(first_name="Ada", last_name="Lovelace", email="a@b.com", company="Acme",
                    service_category=ServiceCategory.SITE_REDESIGN, description="Refresh the marketing site")
        defaults = engagement_defaults(lead)
        assert defaults.title == "Website redesign – Acme"
        assert defaults.description == "Refresh the marketing site"

    def test_title_falls_back_to_full_name(self):
        lead = Lead(first_name="Ada", last_name="Lovelace", email="a@b.com", company="  ",
                    service_category=ServiceCategory.TRAINING)
        assert engagement_defaults(lead).title == "Training – Ada Lovelace"

    def test_title_falls_back_to_email(self):
        lead = Lead(first_name="", last_name=None, email="a@b.com", service_category=ServiceCategory.OTHER)
        assert engagement_defaults(lead).title == "Other – a@b.com"

    def test_empty_lead_never_raises(self):
        defaults = engagement_defaults(Lead())
        assert defaults.title == "Project"
        assert defaults.description is None

    def test_unknown_category_keeps_raw_value(self):
        assert service_category_label("consulting") == "consulting"
        assert service_category_label(None) == "Project"


@pytest.mark.unit
class TestCustomerFields:

    def test_blank_optional_fields_become_none(self):
        lead = Lead(first_name="Ada", last_name="Lovelace", email="a@b.com", phone="",
                    company=None, city="  ")
        fields = customer_fields_from_lead(lead)
        assert fields == {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "a@b.com",
            "phone": None,
            "company": None,
            "city": None,
        }

    def test_values_are_copied_verbatim(self):
        lead = Lead(first_name="Ada", last_name="Lovelace", email="a@b.com", phone="+33 6 12 34 56 78",
                    company="Acme SAS", city="Lyon")
        fields = customer_fields_from_lead(lead)
        assert fields["phone"] == "+33 6 12 34 56 78"
        assert fields["company"] == "Acme SAS"

    def test_credential_defaults_prefill_lead_email(self):
        assert credential_defaults(Lead(email="a@b.com")).email == "a@b.com"
        assert credential_defaults(Lead()).email is None

    def test_blank_names_become_none(self):
        lead = Lead(first_name="  ", last_name=None, email="a@b.com")
        fields = customer_fields_from_lead(lead)
        assert fields["first_name"] is None
        assert fields["last_name"] is None
