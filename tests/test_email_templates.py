import pytest

from leadgen.services import email_templates


@pytest.mark.parametrize("frontend_type, stored", [
    ("networking", "networking"),
    ("referral", "referral_request"),
    ("thank_you", "thank_you"),
    ("cold_email", "networking"),
    (None, "networking"),
])
def test_map_email_type(frontend_type, stored):
    assert email_templates.map_email_type(frontend_type) == stored


@pytest.mark.parametrize("language, subject", [
    ("German", "Anfrage für beruflichen Austausch"),
    ("deutsch", "Anfrage für beruflichen Austausch"),
    ("Italiano", "Richiesta di scambio professionale"),
    ("  portuguese ", "Solicitação de intercâmbio profissional"),
    ("Klingon", "Request for professional exchange"),
    (None, "Request for professional exchange"),
])
def test_render_subject(language, subject):
    assert email_templates.render_subject(language) == subject


def test_body_uses_profile_fields():
    body = email_templates.render_body(
        "Spanish",
        contact_name="Lucía",
        company_name="Banco Sur",
        sender_name="Ada Lovelace",
        study_level="Master's student",
        field_of_study="Economics",
        university="UC3M",
    )

    assert body.startswith("Hola Lucía,")
    assert "Ada Lovelace, Master's student en Economics en UC3M" in body
    assert "Banco Sur" in body
    assert body.endswith("Ada Lovelace")


def test_body_without_template_falls_back_to_english_defaults():
    body = email_templates.render_body("Italian", contact_name="Marco", company_name="Fincorp")

    assert body.startswith("Hello Marco,")
    assert "My name is Student, a student in Finance at my university." in body
    assert "Fincorp" in body
