"""Copying of secrets between clusters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from partition_sync.scenario.environment import ClusterContext

logger = logging.getLogger(__name__)


class SecretRelocator:
    """Copies secrets from one cluster's secret store to another's.

    Relocation is one-shot: the destination must not already hold a secret
    of the same name. Neither failure is retried.
    """

    def __init__(self, source: ClusterContext, destination: ClusterContext) -> None:
        self._source = source
        self._destination = destination

    def relocate(self, name: str) -> None:
        """Copy secret ``name`` with its type and keys unchanged.

        Raises:
            NotFoundError: If the secret does not exist in the source cluster.
            ResourceExistsError: If the destination already has the secret.
        """
        logger.info(
            f"Retrieving secret {name} from the {self._source.name} cluster "
            f"and applying it to the {self._destination.name} cluster"
        )
        secret = self._source.k8s.get_secret(name, self._source.namespace)
        self._destination.k8s.create_secret(
            name=name,
            namespace=self._destination.namespace,
            data=dict(secret.data or {}),
            secret_type=secret.type,
        )

    def remove(self, name: str) -> None:
        """Delete a relocated secret from the destination cluster."""
        logger.info(f"Deleting relocated secret {name} from the {self._destination.name} cluster")
        self._destination.k8s.delete_secret(name, self._destination.namespace)
