"""Tests for Helm values of the primary and secondary installations."""

from partition_sync.config import PartitionSyncConfig
from partition_sync.federation.planner import plan
from partition_sync.install.values import common_values, primary_values, secondary_values
from partition_sync.models import SecurityMode, SyncCase
from partition_sync.scenario.cases import isolate


def make_case(secure: bool = False, mirror: bool = False, destination: str = "ns1") -> SyncCase:
    return SyncCase(
        name="case",
        destination_namespace=destination,
        mirror_k8s=mirror,
        security=SecurityMode.of(secure),
    )


class TestCommonValues:
    """Test values shared by both installations."""

    def test_security_flags_follow_case(self, config: PartitionSyncConfig) -> None:
        """Test TLS and ACL flags reflect the security mode."""
        values = common_values(make_case(secure=True), config)

        assert values["global.tls.enabled"] == "true"
        assert values["global.tls.httpsOnly"] == "true"
        assert values["global.tls.enableAutoEncrypt"] == "true"
        assert values["global.acls.manageSystemACLs"] == "true"

        values = common_values(make_case(secure=False), config)
        assert values["global.tls.httpsOnly"] == "false"
        assert values["global.acls.manageSystemACLs"] == "false"

    def test_catalog_sync_settings(self, config: PartitionSyncConfig) -> None:
        """Test catalog sync is enabled with the case's namespace policy."""
        values = common_values(make_case(mirror=True, destination="default"), config)

        assert values["syncCatalog.enabled"] == "true"
        assert values["syncCatalog.consulNamespaces.consulDestinationNamespace"] == "default"
        assert values["syncCatalog.consulNamespaces.mirroringK8S"] == "true"
        assert values["syncCatalog.addK8SNamespaceSuffix"] == "false"
        assert values["global.adminPartitions.enabled"] == "true"
        assert values["global.enableConsulNamespaces"] == "true"
        assert not any(key.startswith("syncCatalog.k8sAllowNamespaces") for key in values)

    def test_isolated_case_syncs_only_its_namespace(self, config: PartitionSyncConfig) -> None:
        """Test concurrent cases restrict catalog sync to their own namespace."""
        case = isolate(make_case(destination="default"), "1")
        trust_plan = plan(case.security, "rel", "https://10.0.1.1:6443")

        for values in (
            common_values(case, config),
            primary_values(case, config),
            secondary_values(case, config, "10.0.0.5", trust_plan),
        ):
            assert values["syncCatalog.k8sAllowNamespaces[0]"] == "ns1-1"
        assert common_values(case, config)["syncCatalog.consulNamespaces.consulDestinationNamespace"] == "default"

    def test_image_overrides(self, config: PartitionSyncConfig) -> None:
        """Test image and license settings are only set when configured."""
        assert "global.image" not in common_values(make_case(), config)

        config = config.model_copy(
            update={
                "consul_image": "hashicorp/consul-enterprise:1.12-ent",
                "enterprise_license_secret_name": "license",
                "enterprise_license_secret_key": "key",
            }
        )
        values = common_values(make_case(), config)

        assert values["global.image"] == "hashicorp/consul-enterprise:1.12-ent"
        assert values["global.enterpriseLicense.secretName"] == "license"


class TestPrimaryValues:
    """Test values of the server installation."""

    def test_exposes_gossip_and_rpc(self, config: PartitionSyncConfig) -> None:
        """Test servers expose ports to the other cluster."""
        values = primary_values(make_case(), config)

        assert values["server.exposeGossipAndRPCPorts"] == "true"
        assert "global.adminPartitions.service.type" not in values

    def test_kind_uses_node_port(self, config: PartitionSyncConfig) -> None:
        """Test kind clusters reach the partition service through a NodePort."""
        config = config.model_copy(update={"use_kind": True})

        values = primary_values(make_case(), config)

        assert values["global.adminPartitions.service.type"] == "NodePort"
        assert values["global.adminPartitions.service.nodePort.https"] == "30000"


class TestSecondaryValues:
    """Test values of the client-only installation."""

    def test_points_at_primary(self, config: PartitionSyncConfig) -> None:
        """Test external servers and join address use the partition service."""
        case = make_case()
        trust = plan(case.security, "rel", "https://api")

        values = secondary_values(case, config, "10.0.0.5", trust)

        assert values["global.enabled"] == "false"
        assert values["global.adminPartitions.name"] == "secondary"
        assert values["externalServers.enabled"] == "true"
        assert values["externalServers.hosts[0]"] == "10.0.0.5"
        assert values["externalServers.tlsServerName"] == "server.dc1.consul"
        assert values["client.join[0]"] == "10.0.0.5"
        assert values["client.enabled"] == "true"
        assert "externalServers.httpsPort" not in values

    def test_includes_trust_plan_references(self, config: PartitionSyncConfig) -> None:
        """Test the trust plan's secret references are passed through."""
        case = make_case(secure=True)
        trust = plan(case.security, "rel", "https://api")

        values = secondary_values(case, config, "10.0.0.5", trust)

        for key, value in trust.helm_values.items():
            assert values[key] == value
        assert "global.tls.caKey.secretName" not in values

    def test_kind_sets_https_port(self, config: PartitionSyncConfig) -> None:
        """Test kind clusters talk to the NodePort."""
        config = config.model_copy(update={"use_kind": True})
        case = make_case()

        values = secondary_values(case, config, "172.18.0.2", plan(case.security, "rel", "h"))

        assert values["externalServers.httpsPort"] == "30000"
