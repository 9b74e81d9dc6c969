"""Orchestration of one catalog sync case across two partitions."""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial

from partition_sync.clients.consul import ConsulClient
from partition_sync.federation.namespaces import catalog_queries
from partition_sync.federation.planner import (
    CA_CERT_KEY,
    PRIMARY_PARTITION,
    SECONDARY_PARTITION,
    ca_cert_secret_name,
    plan,
)
from partition_sync.federation.relocator import SecretRelocator
from partition_sync.install.helm import HelmInstaller
from partition_sync.install.values import (
    KIND_PARTITION_HTTPS_NODE_PORT,
    primary_values,
    secondary_values,
)
from partition_sync.install.workload import STATIC_SERVER_NAME, WorkloadDeployer
from partition_sync.models import (
    CaseResult,
    CaseStatus,
    CatalogEntry,
    Partition,
    PartitionRole,
    SyncCase,
)
from partition_sync.scenario.cases import isolate
from partition_sync.scenario.cleanup import CleanupStack
from partition_sync.scenario.environment import ClusterContext, Environment
from partition_sync.utils.errors import LivenessError, PartitionSyncError
from partition_sync.utils.naming import random_name
from partition_sync.verification.convergence import CatalogConvergenceVerifier
from partition_sync.verification.tokens import TokenRevocationChecker

logger = logging.getLogger(__name__)

CONSUL_HTTPS_PORT = "8501"
CLIENT_POD_SELECTOR = "app=consul,component=client"


def bootstrap_token_secret_name(release_name: str) -> str:
    return f"{release_name}-consul-bootstrap-acl-token"


def partition_service_name(release_name: str) -> str:
    return f"{release_name}-consul-partition"


@dataclass
class Installation:
    """Partitions brought up by the setup phase of a case."""

    release_name: str
    primary: Partition
    secondary: Partition
    partition_host: str


class ScenarioDriver:
    """Runs catalog sync cases against an Environment.

    Each case installs a primary partition, relocates the trust material a
    secondary partition needs, installs the secondary, deploys the
    static-server into both clusters and waits for the catalog of both
    partitions to converge. Every resource is registered on a cleanup stack
    as it is created and torn down in reverse order when the case ends.
    """

    def __init__(
        self,
        env: Environment,
        installer: HelmInstaller | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._env = env
        self._config = env.config
        self._installer = installer or HelmInstaller(env.config)
        self._sleep = sleep

    def run_case(self, case: SyncCase) -> CaseResult:
        """Run one case and tear everything down afterwards.

        Setup failures and unexpected exceptions give ERROR, verification
        failures give FAILED. A case that passed but whose cleanup raised
        (including the ACL token post-condition) is FAILED as well.
        """
        if not self._config.enable_enterprise:
            return CaseResult(
                case=case,
                status=CaseStatus.SKIPPED,
                message="admin partitions require Consul Enterprise; enable_enterprise is not set",
            )

        logger.info(f"Running case: {case.name}")
        cleanup = CleanupStack()
        status = CaseStatus.PASSED
        message: str | None = None
        entries: list[CatalogEntry] = []

        try:
            try:
                installation = self.setup(case, cleanup)
            except PartitionSyncError as e:
                status, message = CaseStatus.ERROR, f"setup failed: {e}"
            else:
                try:
                    entries = self.verify(case, installation, cleanup)
                except PartitionSyncError as e:
                    status, message = CaseStatus.FAILED, str(e)
        except Exception as e:
            logger.exception(f"Unexpected error in case {case.name}")
            status, message = CaseStatus.ERROR, f"unexpected error: {e!r}"

        cleanup_errors: list[str] = []
        if status != CaseStatus.PASSED and self._config.no_cleanup_on_failure:
            cleanup.skip()
        else:
            cleanup_errors = [str(f) for f in cleanup.run()]

        if cleanup_errors and status == CaseStatus.PASSED:
            status = CaseStatus.FAILED
            message = f"cleanup failed: {'; '.join(cleanup_errors)}"

        if status == CaseStatus.PASSED:
            logger.info(f"Case passed: {case.name}")
        else:
            logger.error(f"Case {status.value}: {case.name}: {message}")

        return CaseResult(
            case=case,
            status=status,
            message=message,
            cleanup_errors=cleanup_errors,
            entries=entries,
        )

    # Steps 1-4: failures here are fatal to the case.
    def setup(self, case: SyncCase, cleanup: CleanupStack) -> Installation:
        """Install both partitions with the trust material between them."""
        env = self._env
        release_name = random_name()

        primary = self._installer.install(
            env.primary,
            release_name,
            primary_values(case, self._config),
            PRIMARY_PARTITION,
            PartitionRole.PRIMARY,
        )
        cleanup.push(
            f"uninstall {release_name} from the {env.primary.name} cluster",
            partial(self._installer.uninstall, env.primary, primary),
        )

        partition_host = env.primary.k8s.service_host(
            partition_service_name(release_name), env.primary.namespace, sleep=self._sleep
        )
        trust_plan = plan(case.security, release_name, env.secondary.k8s.api_server_host())

        relocator = SecretRelocator(env.primary, env.secondary)
        for secret_name in trust_plan.secret_names():
            relocator.relocate(secret_name)
            cleanup.push(
                f"delete secret {secret_name} from the {env.secondary.name} cluster",
                partial(relocator.remove, secret_name),
            )

        secondary = self._installer.install(
            env.secondary,
            release_name,
            secondary_values(case, self._config, partition_host, trust_plan),
            SECONDARY_PARTITION,
            PartitionRole.SECONDARY,
        )
        cleanup.push(
            f"uninstall {release_name} from the {env.secondary.name} cluster",
            partial(self._installer.uninstall, env.secondary, secondary),
        )

        self.check_liveness(env.secondary, secondary.name)

        return Installation(
            release_name=release_name,
            primary=primary,
            secondary=secondary,
            partition_host=partition_host,
        )

    def check_liveness(self, cluster: ClusterContext, partition_name: str) -> None:
        """Check a Consul client agent runs and reports the expected partition.

        Raises:
            LivenessError: If no agent pod exists or its log names another partition.
        """
        pods = cluster.k8s.list_pods(cluster.namespace, label_selector=CLIENT_POD_SELECTOR)
        if not pods:
            raise LivenessError(f"No Consul client pods found in the {cluster.name} cluster")

        pod_name = pods[0].metadata.name
        output = cluster.k8s.read_pod_log(pod_name, cluster.namespace, container="consul")
        if f"Partition: '{partition_name}'" not in output:
            raise LivenessError(
                f"Consul client {pod_name} does not report membership in partition '{partition_name}'"
            )
        logger.info(f"Consul client {pod_name} joined partition '{partition_name}'")

    def consul_client(self, case: SyncCase, installation: Installation) -> ConsulClient:
        """Create a Consul API client talking to the primary's servers."""
        k8s = self._env.primary.k8s
        namespace = self._env.primary.namespace
        release_name = installation.release_name

        ca_secret = k8s.get_secret(ca_cert_secret_name(release_name), namespace)
        ca_cert_pem = _decode(ca_secret.data[CA_CERT_KEY])

        token: str | None = None
        if case.security.acls_enabled:
            token_secret = k8s.get_secret(bootstrap_token_secret_name(release_name), namespace)
            token = _decode(token_secret.data["token"])

        port = KIND_PARTITION_HTTPS_NODE_PORT if self._config.use_kind else CONSUL_HTTPS_PORT
        return ConsulClient(
            f"https://{installation.partition_host}:{port}",
            ca_cert_pem=ca_cert_pem,
            token=token,
            timeout=self._config.consul_request_timeout,
        )

    # Steps 5-8: failures here are reported as assertion failures.
    def verify(
        self,
        case: SyncCase,
        installation: Installation,
        cleanup: CleanupStack,
    ) -> list[CatalogEntry]:
        """Deploy the workload into both clusters and wait for catalog convergence."""
        clusters = (self._env.primary, self._env.secondary)
        namespace = case.workload_namespace

        for cluster in clusters:
            logger.info(f"Creating namespace {namespace} in the {cluster.name} cluster")
            cluster.k8s.create_namespace(namespace)
            cleanup.push(
                f"delete namespace {namespace} from the {cluster.name} cluster",
                partial(cluster.k8s.delete_namespace, namespace),
            )

        consul = self.consul_client(case, installation)
        cleanup.push("close Consul client", consul.close)

        primary_query, secondary_query = catalog_queries(
            case,
            primary_partition=installation.primary.name,
            secondary_partition=installation.secondary.name,
        )

        # Registered before the workloads so that it runs after they are removed.
        if case.security.acls_enabled:
            checker = TokenRevocationChecker(
                consul,
                attempts=self._config.token_check_attempts,
                wait_seconds=self._config.token_check_wait_seconds,
                sleep=self._sleep,
            )
            cleanup.push(
                f"check ACL tokens for {STATIC_SERVER_NAME} are deleted",
                partial(checker.check, [primary_query, secondary_query], STATIC_SERVER_NAME),
            )

        for cluster in clusters:
            deployer = WorkloadDeployer(cluster)
            deployer.deploy(namespace)
            cleanup.push(
                f"delete {deployer.name} from the {cluster.name} cluster",
                partial(deployer.remove, namespace),
            )

        logger.info("Checking that the service has been synced to Consul")
        verifier = CatalogConvergenceVerifier(
            consul,
            attempts=self._config.convergence_attempts,
            wait_seconds=self._config.convergence_wait_seconds,
            sleep=self._sleep,
        )
        return verifier.verify(primary_query, secondary_query, STATIC_SERVER_NAME)


def _decode(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


def run_cases(
    driver: ScenarioDriver,
    cases: Iterable[SyncCase],
    parallelism: int = 1,
) -> list[CaseResult]:
    """Run cases one after another, or concurrently with isolated namespaces.

    Results are returned in case order.
    """
    selected = list(cases)
    if parallelism <= 1 or len(selected) <= 1:
        return [driver.run_case(case) for case in selected]

    isolated = [isolate(case, str(index)) for index, case in enumerate(selected)]
    with ThreadPoolExecutor(max_workers=parallelism) as executor:
        return list(executor.map(driver.run_case, isolated))
