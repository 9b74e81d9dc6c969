"""Polling of the Consul catalog until both partitions list a service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import TYPE_CHECKING

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from partition_sync.models import CatalogEntry, CatalogQuery
from partition_sync.utils.errors import (
    ConsulAPIError,
    ConvergenceTimeoutError,
    DetailMismatchError,
    ServiceNotVisibleError,
)

if TYPE_CHECKING:
    from partition_sync.clients.consul import ConsulClient

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 20
DEFAULT_WAIT_SECONDS = 30.0
EXPECTED_TAGS = frozenset({"k8s"})


class ConvergenceState(str, Enum):
    """State of a convergence check."""

    POLLING = "polling"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


class CatalogConvergenceVerifier:
    """Waits for a service to appear in two partitions, then checks its detail.

    List membership is retried within a fixed budget because catalog sync
    is asynchronous. Once both partitions list the service, the detail is
    checked exactly once: a wrong tag set or instance count is a defect,
    not a propagation delay.
    """

    def __init__(
        self,
        consul: ConsulClient,
        attempts: int = DEFAULT_ATTEMPTS,
        wait_seconds: float = DEFAULT_WAIT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._consul = consul
        self._attempts = attempts
        self._wait_seconds = wait_seconds
        self._sleep = sleep
        self.state = ConvergenceState.POLLING
        self.attempts_made = 0

    def _log_retry(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        error = outcome.exception() if outcome else None
        logger.info(
            f"Catalog not converged (attempt {retry_state.attempt_number}/{self._attempts}): {error}"
        )

    def _check_listed(self, query: CatalogQuery, service_name: str) -> None:
        services = self._consul.list_services(query)
        if service_name not in services:
            raise ServiceNotVisibleError(query.partition, query.namespace, service_name, services)

    def wait_for_services(
        self,
        primary_query: CatalogQuery,
        secondary_query: CatalogQuery,
        service_name: str,
    ) -> None:
        """Poll until both partitions list ``service_name``.

        Raises:
            ConvergenceTimeoutError: If the budget is exhausted. The message
                names the partition and namespace that lacked the service.
        """
        self.state = ConvergenceState.POLLING
        self.attempts_made = 0
        retrying = Retrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_fixed(self._wait_seconds),
            retry=retry_if_exception_type((ServiceNotVisibleError, ConsulAPIError)),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        pending = primary_query
        last_missing: ServiceNotVisibleError | None = None
        try:
            for attempt in retrying:
                with attempt:
                    self.attempts_made = attempt.retry_state.attempt_number
                    for query in (primary_query, secondary_query):
                        pending = query
                        try:
                            self._check_listed(query, service_name)
                        except ServiceNotVisibleError as e:
                            last_missing = e
                            raise
        except (ServiceNotVisibleError, ConsulAPIError) as e:
            self.state = ConvergenceState.EXHAUSTED
            if isinstance(e, ServiceNotVisibleError):
                detail = str(e)
            elif last_missing is not None:
                detail = f"{last_missing}; last attempt failed: {e}"
            else:
                detail = (
                    f"service '{service_name}' could not be listed in the {pending.partition} "
                    f"partition (namespace '{pending.namespace}'): {e}"
                )
            raise ConvergenceTimeoutError(
                f"Catalog did not converge after {self.attempts_made} attempts: {detail}"
            ) from e

        self.state = ConvergenceState.CONVERGED
        logger.info(
            f"Service '{service_name}' is listed in partitions "
            f"'{primary_query.partition}' and '{secondary_query.partition}'"
        )

    def check_details(
        self,
        query: CatalogQuery,
        service_name: str,
        expected_tags: Iterable[str] = EXPECTED_TAGS,
    ) -> CatalogEntry:
        """Check a converged service has one instance with the expected tags.

        Raises:
            DetailMismatchError: On any mismatch. Never retried.
        """
        expected = frozenset(expected_tags)
        instances = self._consul.get_service(service_name, query)
        location = f"partition '{query.partition}', namespace '{query.namespace}'"

        if len(instances) != 1:
            raise DetailMismatchError(
                f"Expected 1 instance of '{service_name}' in {location}, found {len(instances)}"
            )
        tags = frozenset(instances[0].tags)
        if len(instances[0].tags) != len(tags) or tags != expected:
            raise DetailMismatchError(
                f"Expected tags {sorted(expected)} for '{service_name}' in {location}, "
                f"found {instances[0].tags}"
            )

        return CatalogEntry(
            service_name=service_name,
            partition=query.partition,
            namespace=query.namespace,
            tags=tags,
            instance_count=len(instances),
        )

    def verify(
        self,
        primary_query: CatalogQuery,
        secondary_query: CatalogQuery,
        service_name: str,
        expected_tags: Iterable[str] = EXPECTED_TAGS,
    ) -> list[CatalogEntry]:
        """Wait for convergence, then point-check both partitions."""
        self.wait_for_services(primary_query, secondary_query, service_name)
        return [
            self.check_details(primary_query, service_name, expected_tags),
            self.check_details(secondary_query, service_name, expected_tags),
        ]
