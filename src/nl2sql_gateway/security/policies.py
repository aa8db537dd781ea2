"""
Policy Service
==============

Read access to security policies and single-policy activation.
"""

from typing import Optional

import structlog

from nl2sql_gateway.models import SecurityPolicy
from nl2sql_gateway.store.base import ConfigStore

logger = structlog.get_logger(__name__)


class PolicyService:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def find_all(self) -> list[SecurityPolicy]:
        return self.store.list_policies()

    def find_one(self, policy_id: str) -> SecurityPolicy:
        """
        Raises:
            NotFoundError: If no policy has this id
        """
        return self.store.get_policy(policy_id)

    def get_active(self) -> Optional[SecurityPolicy]:
        """The active policy with the lowest priority value, if any."""
        policies = self.store.find_active_policies()
        return policies[0] if policies else None

    def set_active(self, policy_id: str) -> SecurityPolicy:
        """Make one policy the only active one."""
        selected = self.find_one(policy_id)
        for policy in self.store.list_policies():
            if policy.is_active and policy.id != policy_id:
                policy.is_active = False
                self.store.save_policy(policy)

        selected.is_active = True
        self.store.save_policy(selected)
        logger.info("security_policy_activated", policy_id=policy_id, name=selected.name)
        return selected
