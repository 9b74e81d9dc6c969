"""Post-teardown check that a workload's ACL tokens were deleted."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from partition_sync.models import CatalogQuery
from partition_sync.utils.errors import ConsulAPIError, StaleTokenError

if TYPE_CHECKING:
    from partition_sync.clients.consul import ConsulClient

logger = logging.getLogger(__name__)


class TokenRevocationChecker:
    """Waits until no ACL token mentions a removed workload.

    Tokens are created by the auth method when a workload logs in and must
    be deleted once the workload is gone. The check has a retry budget of
    its own, independent of catalog convergence.
    """

    def __init__(
        self,
        consul: ConsulClient,
        attempts: int = 30,
        wait_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._consul = consul
        self._attempts = attempts
        self._wait_seconds = wait_seconds
        self._sleep = sleep

    def _check_once(self, queries: Iterable[CatalogQuery], workload_name: str) -> None:
        for query in queries:
            for token in self._consul.list_tokens(query):
                if workload_name in token.description:
                    raise StaleTokenError(
                        f"Token {token.accessor_id or '<unknown>'} for '{workload_name}' still "
                        f"exists in partition '{query.partition}', namespace '{query.namespace}': "
                        f"{token.description!r}"
                    )

    def check(self, queries: Iterable[CatalogQuery], workload_name: str) -> None:
        """Poll every query scope until no token description contains ``workload_name``.

        Raises:
            StaleTokenError: If a token is still listed when the budget runs out.
        """
        scopes = list(queries)
        retrying = Retrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_fixed(self._wait_seconds),
            retry=retry_if_exception_type((StaleTokenError, ConsulAPIError)),
            sleep=self._sleep,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self._check_once(scopes, workload_name)
        logger.info(f"No ACL tokens remain for '{workload_name}'")
