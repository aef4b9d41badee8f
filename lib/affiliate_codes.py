"""Affiliate code generation"""
import re
import secrets
import string

CODE_ALPHABET = string.ascii_letters + string.digits
PREFIX_LENGTH = 8
SUFFIX_LENGTH = 6

# Codes travel in query strings and cart attributes unescaped
_UNSAFE = re.compile(r"[^A-Za-z0-9]")


def generate_affiliate_code(creator_id: str, product_id: str, suffix_length: int = SUFFIX_LENGTH) -> str:
    """
    Generate a code like "c0ffee12_9f86d081_x8Fk2q".

    The creator and product prefixes make a code readable in reports; the
    random suffix makes it unique. Callers retry on the rare collision.
    """
    parts = [_UNSAFE.sub("", part)[:PREFIX_LENGTH] for part in (creator_id, product_id)]
    parts.append("".join(secrets.choice(CODE_ALPHABET) for _ in range(suffix_length)))
    return "_".join(part for part in parts if part)
