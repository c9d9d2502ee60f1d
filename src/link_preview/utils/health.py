"""Health and readiness reporting for the HTTP probes."""

from dataclasses import asdict, dataclass, field
from typing import Any

from link_preview import __version__
from link_preview.config import Settings, settings


@dataclass
class HealthStatus:
    """Health status of a component."""

    name: str
    healthy: bool
    message: str = ""
    latency_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        entry = asdict(self)
        entry.pop("name")
        return entry


class HealthChecker:
    """
    Reports which renderers can serve extraction and screenshot jobs.

    All checks are configuration-only; none of them calls an upstream.
    """

    def __init__(self, app_settings: Settings | None = None) -> None:
        self._settings = app_settings or settings

    def _renderer_names(self) -> list[str]:
        names = []
        if self._settings.is_rendering_configured():
            names.append("cloudflare")
        if self._settings.use_fetch_fallback:
            names.append("html_fetch")
        return names

    async def check_renderers_configured(self) -> HealthStatus:
        """Extraction needs at least one renderer."""
        renderers = self._renderer_names()
        return HealthStatus(
            name="renderers",
            healthy=bool(renderers),
            message=f"Configured renderers: {', '.join(renderers) or 'none'}",
            details={"renderers": renderers},
        )

    async def check_screenshots_configured(self) -> HealthStatus:
        """Screenshots need the rendering service; their absence is not fatal."""
        enabled = self._settings.is_rendering_configured()
        return HealthStatus(
            name="screenshots",
            healthy=True,
            message="Screenshot capture enabled" if enabled else "Screenshot capture disabled",
            details={"enabled": enabled},
        )

    async def check_all(self) -> dict[str, Any]:
        """
        Run every check.

        Returns:
            Overall flag, per-check entries and the package version
        """
        checks = [
            await self.check_renderers_configured(),
            await self.check_screenshots_configured(),
        ]
        healthy = all(check.healthy for check in checks)
        return {
            "healthy": healthy,
            "status": "healthy" if healthy else "unhealthy",
            "checks": {check.name: check.to_dict() for check in checks},
            "version": __version__,
        }

    async def check_readiness(self) -> dict[str, Any]:
        """Ready once extraction has a renderer to run on."""
        renderers = await self.check_renderers_configured()
        return {
            "ready": renderers.healthy,
            "status": "ready" if renderers.healthy else "not_ready",
            "renderers": renderers.details["renderers"],
        }

    async def check_liveness(self) -> dict[str, Any]:
        return {"alive": True, "status": "alive"}
