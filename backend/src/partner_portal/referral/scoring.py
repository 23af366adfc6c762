"""Heuristic lead quality scoring for public submissions."""

# Score contributions
PHONE_POINTS = 20
REFERRER_EMAIL_POINTS = 10
REFERRER_PHONE_POINTS = 10
DETAILED_MESSAGE_POINTS = 20
DETAILED_MESSAGE_MIN_LENGTH = 40  # strictly longer than this

MAX_QUALITY_SCORE = PHONE_POINTS + REFERRER_EMAIL_POINTS + REFERRER_PHONE_POINTS + DETAILED_MESSAGE_POINTS


def build_lead_message(
    lead_message: str | None,
    referrer_name: str | None = None,
    referrer_email: str | None = None,
    referrer_phone: str | None = None,
) -> str:
    """Append the referrer's contact details to the lead message.

    Public submissions have no referrer columns, so the details are kept
    as a text block at the end of the message.

    Returns:
        Combined message, empty string when there is nothing to store
    """
    message = lead_message or ""
    if not (referrer_name or referrer_email or referrer_phone):
        return message

    block = "\n\nReferrer Details:\n"
    if referrer_name:
        block += f"Name: {referrer_name}"
    if referrer_email:
        block += f"\nEmail: {referrer_email}"
    if referrer_phone:
        block += f"\nPhone: {referrer_phone}"
    return message + block


def compute_quality_score(
    lead_phone: str | None,
    referrer_email: str | None,
    referrer_phone: str | None,
    combined_message: str | None,
) -> int:
    """Score a lead from 0 to 60 by which signals are present.

    Args:
        lead_phone: Lead phone number
        referrer_email: Referrer email
        referrer_phone: Referrer phone number
        combined_message: Message as stored, referrer block included

    Returns:
        Quality score
    """
    score = 0
    if lead_phone:
        score += PHONE_POINTS
    if referrer_email:
        score += REFERRER_EMAIL_POINTS
    if referrer_phone:
        score += REFERRER_PHONE_POINTS
    if combined_message and len(combined_message) > DETAILED_MESSAGE_MIN_LENGTH:
        score += DETAILED_MESSAGE_POINTS
    return score
