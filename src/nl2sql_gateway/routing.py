"""
Model Router
============

Picks the completion model for a request from the configuration store.

Filters are applied in a fixed order and each optional narrowing step is
skipped when it would leave no candidate. The surviving candidates are
ranked by their provider's priority (lower first, missing last).
"""

from typing import Optional

import structlog

from nl2sql_gateway.diagnostics import DiagnosticEngine
from nl2sql_gateway.models import (
    AIModel,
    ModelPurpose,
    Provider,
    RoutedModel,
    RoutingContext,
)
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)

_NO_PRIORITY = float("inf")


def _provider_priority(provider: Provider) -> float:
    return _NO_PRIORITY if provider.priority is None else provider.priority


class ModelRouter:
    """Chooses a model (and its provider) for a routing context."""

    def __init__(
        self,
        store: ConfigStore,
        diagnostics: Optional[DiagnosticEngine] = None,
    ) -> None:
        self.store = store
        self.diagnostics = diagnostics

    def select_model(self, context: Optional[RoutingContext] = None) -> Optional[RoutedModel]:
        """
        Select the best active model for the context.

        Args:
            context: Purpose, database type and preference hints

        Returns:
            RoutedModel, or None when no active model has an active provider
        """
        return self._select(context or RoutingContext())

    def select_with_failover(
        self, context: Optional[RoutingContext] = None
    ) -> Optional[RoutedModel]:
        """
        Select a model from the first provider that passes a live probe.

        Providers are tried strictly in priority order. A provider that
        passes the probe but hosts no eligible model is skipped too.
        """
        if self.diagnostics is None:
            raise ValueError("Failover routing requires a diagnostic engine")

        context = context or RoutingContext()
        providers = sorted(self.store.find_active_providers(), key=_provider_priority)

        for provider in providers:
            try:
                probe = self.diagnostics.probe(provider)
            except Exception as e:
                logger.error("provider_probe_error", provider=provider.name, error=str(e))
                continue

            if not probe.success:
                logger.warning(
                    "provider_unavailable", provider=provider.name, message=probe.message
                )
                continue

            routed = self._select(context, required_provider_id=provider.id)
            if routed is not None:
                routed.reason += ", failover"
                return routed
            logger.warning("provider_has_no_eligible_model", provider=provider.name)

        logger.error("all_providers_unavailable", tried=len(providers))
        return None

    def _select(
        self,
        context: RoutingContext,
        required_provider_id: Optional[str] = None,
    ) -> Optional[RoutedModel]:
        candidates = self.store.find_active_models()
        if not candidates:
            logger.warning("no_active_models")
            return None

        reasons: list[str] = []

        if context.purpose is not None:
            narrowed = [
                m
                for m in candidates
                if m.purpose == context.purpose or m.purpose == ModelPurpose.GENERAL
            ]
            if narrowed:
                candidates = narrowed
            reasons.append(f"purpose={context.purpose.value}")

        if context.db_type:
            reasons.append(f"dbType={context.db_type}")

        if required_provider_id is not None:
            candidates = [m for m in candidates if m.provider_id == required_provider_id]
        elif context.preferred_provider_id:
            narrowed = [m for m in candidates if m.provider_id == context.preferred_provider_id]
            if narrowed:
                candidates = narrowed
                reasons.append("preferredProvider")

        if context.preferred_model_id:
            narrowed = [m for m in candidates if m.id == context.preferred_model_id]
            if narrowed:
                candidates = narrowed
                reasons.append("preferredModel")

        providers = {p.id: p for p in self.store.find_active_providers()}
        candidates = [m for m in candidates if m.provider_id in providers]
        if not candidates:
            logger.warning("no_models_with_active_providers")
            return None

        # sorted() is stable, so equal priorities keep store order
        candidates = sorted(
            candidates, key=lambda m: _provider_priority(providers[m.provider_id])
        )
        selected: AIModel = candidates[0]
        provider = providers[selected.provider_id]
        priority = provider.priority if provider.priority is not None else "default"
        reasons.append(f"provider_priority={priority}")
        reason = ", ".join(reasons)

        logger.info(
            "model_selected",
            model=selected.name,
            model_id=selected.model_id,
            provider=provider.name,
            reason=reason,
        )
        return RoutedModel(model=selected, provider=provider, reason=reason)
