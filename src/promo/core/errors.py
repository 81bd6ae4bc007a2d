from __future__ import annotations


class PromoError(Exception):
    """Base for every error raised inside the offer panel core."""


class MissingConfiguration(PromoError):
    """A required configuration value (e.g. the payment public key) is absent."""


class CollaboratorError(PromoError):
    """The payment collaborator failed at one of its steps."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step


class LinkConstructionError(PromoError, ValueError):
    """The contact deep link could not be assembled."""
