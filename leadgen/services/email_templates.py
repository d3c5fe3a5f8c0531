"""
Outreach email templates.

Language-aware subject/body templates used to render a generated email once
the credit gate has approved the request.
"""
from typing import Dict, Optional

# Frontend email types -> stored email types
EMAIL_TYPE_MAP: Dict[str, str] = {
    "networking": "networking",
    "coffee_chat": "coffee_chat",
    "cold_application": "cold_application",
    "referral": "referral_request",
    "follow_up": "follow_up",
    "thank_you": "thank_you",
}

VALID_EMAIL_TYPES = set(EMAIL_TYPE_MAP.values())

# Stored email types -> display labels
EMAIL_TYPE_LABELS: Dict[str, str] = {
    "networking": "Networking",
    "coffee_chat": "Coffee Chat",
    "cold_application": "Cold Application",
    "referral_request": "Referral Request",
    "follow_up": "Follow-up",
    "thank_you": "Thank You",
}

DEFAULT_LANGUAGE = "English"

SUBJECTS: Dict[str, str] = {
    "french": "Demande d'échange professionnel",
    "german": "Anfrage für beruflichen Austausch",
    "spanish": "Solicitud de intercambio profesional",
    "italian": "Richiesta di scambio professionale",
    "portuguese": "Solicitação de intercâmbio profissional",
    "english": "Request for professional exchange",
}

BODIES: Dict[str, str] = {
    "french": (
        "Bonjour {contact_name},\n\n"
        "Je m'appelle {sender_name}, {study_level} en {field_of_study} à {university}. "
        "Je suis très intéressé par votre parcours chez {company_name}.\n\n"
        "Seriez-vous disponible pour un échange de 15 minutes ?\n\n"
        "Cordialement,\n{sender_name}"
    ),
    "german": (
        "Hallo {contact_name},\n\n"
        "mein Name ist {sender_name}, {study_level} in {field_of_study} an der {university}. "
        "Ich bin sehr interessiert an Ihrem Werdegang bei {company_name}.\n\n"
        "Wären Sie für einen 15-minütigen Austausch verfügbar?\n\n"
        "Mit freundlichen Grüßen,\n{sender_name}"
    ),
    "spanish": (
        "Hola {contact_name},\n\n"
        "Mi nombre es {sender_name}, {study_level} en {field_of_study} en {university}. "
        "Estoy muy interesado en su trayectoria en {company_name}.\n\n"
        "¿Estaría disponible para un intercambio de 15 minutos?\n\n"
        "Saludos cordiales,\n{sender_name}"
    ),
    "english": (
        "Hello {contact_name},\n\n"
        "My name is {sender_name}, a {study_level} in {field_of_study} at {university}. "
        "I am very interested in your career path at {company_name}.\n\n"
        "Would you be available for a 15-minute exchange?\n\n"
        "Best regards,\n{sender_name}"
    ),
}

# Native language names accepted as aliases
LANGUAGE_ALIASES: Dict[str, str] = {
    "français": "french",
    "deutsch": "german",
    "español": "spanish",
    "italiano": "italian",
    "português": "portuguese",
}


def map_email_type(frontend_type: Optional[str]) -> str:
    """Map a frontend email type to its stored value. Unknown types fall back to networking."""
    return EMAIL_TYPE_MAP.get(frontend_type or "", "networking")


def normalize_language(language: Optional[str]) -> str:
    lang = (language or DEFAULT_LANGUAGE).strip().lower()
    return LANGUAGE_ALIASES.get(lang, lang)


def render_subject(language: Optional[str]) -> str:
    return SUBJECTS.get(normalize_language(language), SUBJECTS["english"])


def render_body(
    language: Optional[str],
    contact_name: str,
    company_name: str,
    sender_name: Optional[str] = None,
    study_level: Optional[str] = None,
    field_of_study: Optional[str] = None,
    university: Optional[str] = None,
) -> str:
    """
    Render the email body in the requested language.

    Languages without a body template (e.g. Italian) get the English body;
    missing profile fields are filled with neutral defaults.
    """
    template = BODIES.get(normalize_language(language), BODIES["english"])
    return template.format(
        contact_name=contact_name,
        company_name=company_name,
        sender_name=sender_name or "Student",
        study_level=study_level or "student",
        field_of_study=field_of_study or "Finance",
        university=university or "my university",
    )
