from typing import Optional
from email_validator import validate_email, EmailNotValidError


def participant_name(email: str) -> Optional[str]:
    """
    Display name for a participant: the local part of their email address.
    Returns None when the address cannot be parsed.
    """
    try:
        parsed = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return None
    return parsed.local_part
