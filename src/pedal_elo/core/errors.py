"""Custom exceptions for configuration, storage and catalogue errors."""

from __future__ import annotations


class PedalEloError(Exception):
    """Base exception for pedal-elo errors with optional suggestions."""

    label = "Error"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[{self.label}] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class ConfigurationError(PedalEloError):
    """Base exception for configuration errors."""

    label = "Configuration Error"


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class ProxyURLError(ConfigurationError):
    """Error when the proxy backend is selected without a URL."""

    def __init__(self) -> None:
        super().__init__(
            "Proxy URL required for the proxy storage backend",
            "Set PEDAL_ELO_PROXY_URL or add storage.proxy_url to config.yaml.",
        )


class StorageError(PedalEloError):
    """Error raised by a key-value backend."""

    label = "Storage Error"

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(f"Operation on '{key}' failed: {reason}")


class CatalogueError(PedalEloError):
    """Error when a catalogue source cannot provide pedals."""

    label = "Catalogue Error"

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        super().__init__(f"{source}: {reason}")


class UnknownPedalError(PedalEloError):
    """Error when a vote references a pedal that is not in the catalogue."""

    label = "Vote Error"

    def __init__(self, pedal_id: str) -> None:
        self.pedal_id = pedal_id
        super().__init__(
            f"Unknown pedal id '{pedal_id}'",
            "Run 'pedal-elo leaderboard' to list known pedal ids.",
        )
