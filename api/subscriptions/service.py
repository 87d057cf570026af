"""
Subscriber validation rules.

Kept apart from the router so the rules can be exercised without HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, status

MAX_NAME_LENGTH = 256
MAX_EMAIL_LENGTH = 320
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')


@dataclass(frozen=True)
class NewSubscriber:
    email: str
    name: str


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def parse_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Name must be at most {MAX_NAME_LENGTH} characters.",
        )
    if any(ch in FORBIDDEN_NAME_CHARACTERS for ch in name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name contains forbidden characters.",
        )
    return name


def parse_email(raw: str) -> str:
    email = normalize_email(raw)
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain or " " in email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is invalid.")
    if len(email) > MAX_EMAIL_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is too long.")
    return email


def parse_new_subscriber(*, name: str, email: str) -> NewSubscriber:
    return NewSubscriber(email=parse_email(email), name=parse_name(name))
