import re
import secrets
import string
import time

SPECIAL_CHARS = "!@#$%^&*"


def generate_secure_password(length=12):
    """Generate a random password with at least one char of every class."""
    if length < 8:
        length = 8

    uppercase = string.ascii_uppercase
    lowercase = string.ascii_lowercase
    digits = string.digits

    password_chars = [
        secrets.choice(uppercase),
        secrets.choice(lowercase),
        secrets.choice(digits),
        secrets.choice(SPECIAL_CHARS)
    ]

    all_chars = uppercase + lowercase + digits + SPECIAL_CHARS
    password_chars.extend(secrets.choice(all_chars) for _ in range(length - 4))
    secrets.SystemRandom().shuffle(password_chars)

    return ''.join(password_chars)


def generate_temporary_username(company_name: str) -> str:
    """temp_<company slug>_<epoch millis>, e.g. temp_acme_corp_1700000000000"""
    slug = re.sub(r"\s+", "_", company_name.strip().lower())
    return f"temp_{slug}_{int(time.time() * 1000)}"
