"""Slug generation for stable pedal ids and storage keys."""

from __future__ import annotations

import re


class SlugGenerator:
    """Generate stable identifiers from catalogue fields.

    Pedal ids must survive catalogue reloads, so they are built only from
    brand, name and filename and never from list position.
    """

    def __init__(self, max_length: int | None = None) -> None:
        """Initialize slug generator.

        Args:
            max_length: Maximum length for generated slugs. Use None to disable truncation.
        """
        self.max_length = max_length

    def token(self, value: str) -> str:
        """Lowercase a value and replace every non-alphanumeric character with a dash."""
        return self.truncate(re.sub(r"[^a-z0-9]", "-", value.lower()))

    def slugify(self, value: str) -> str:
        """Lowercase a value and collapse runs of non-alphanumerics into one dash."""
        return self.truncate(re.sub(r"[^a-z0-9]+", "-", value.lower()))

    def default_filename(self, brand: str | None, name: str | None) -> str:
        """Build the image filename used when the catalogue entry has none."""
        return f"{self.token(brand or 'unknown')}-{self.token(name or 'pedal')}"

    def pedal_id(self, brand: str | None, name: str | None, filename: str) -> str:
        """Build a pedal id anchored to brand, name and filename."""
        return f"{self.token(brand or '')}__{self.token(name or '')}__{filename}"

    def truncate(self, value: str) -> str:
        """Truncate a value to the configured max length."""
        if self.max_length is None:
            return value
        return value[: self.max_length]


def battle_storage_key(brand_a: str, brand_b: str) -> str:
    """Build an order-independent key for a brand battle.

    ``battle_storage_key("Boss", "MXR") == battle_storage_key("MXR", "Boss")``.
    """
    slugs = SlugGenerator()
    return "-vs-".join(sorted(slugs.slugify(b) for b in (brand_a, brand_b)))
