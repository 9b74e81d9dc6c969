"""Tests for ConsulClient."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from partition_sync.clients.consul import ConsulClient
from partition_sync.models import CatalogQuery
from partition_sync.utils.errors import ConsulAPIError, ConsulConnectionError

QUERY = CatalogQuery(partition="secondary", namespace="ns1")


def make_response(json_data: object) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = json_data
    response.raise_for_status = MagicMock()
    return response


class TestConsulClient:
    """Test Consul HTTP API operations."""

    @pytest.fixture
    def client(self) -> ConsulClient:
        """Create a client without TLS settings."""
        return ConsulClient("https://10.0.0.5:8501", token="secret-token")

    def test_list_services(self, client: ConsulClient) -> None:
        """Test services are listed with partition and namespace parameters."""
        mock_http = MagicMock()
        mock_http.get.return_value = make_response({"consul": None, "static-server": ["k8s"]})

        with patch.object(client, "_get_client", return_value=mock_http):
            services = client.list_services(QUERY)

        assert services == {"consul": [], "static-server": ["k8s"]}
        mock_http.get.assert_called_once_with(
            "/v1/catalog/services", params={"partition": "secondary", "ns": "ns1"}
        )

    def test_get_service(self, client: ConsulClient) -> None:
        """Test service instances are parsed."""
        mock_http = MagicMock()
        mock_http.get.return_value = make_response(
            [
                {
                    "Node": "k8s-sync",
                    "Address": "127.0.0.1",
                    "ServiceName": "static-server",
                    "ServiceTags": ["k8s"],
                    "ServiceAddress": "10.244.0.12",
                    "ServicePort": 8080,
                    "Namespace": "ns1",
                    "Partition": "secondary",
                }
            ]
        )

        with patch.object(client, "_get_client", return_value=mock_http):
            entries = client.get_service("static-server", QUERY)

        assert len(entries) == 1
        assert entries[0].tags == ["k8s"]
        assert entries[0].address == "10.244.0.12"
        assert entries[0].port == 8080
        assert entries[0].partition == "secondary"
        mock_http.get.assert_called_once_with(
            "/v1/catalog/service/static-server", params={"partition": "secondary", "ns": "ns1"}
        )

    def test_get_service_null_tags(self, client: ConsulClient) -> None:
        """Test missing tags parse as an empty list."""
        mock_http = MagicMock()
        mock_http.get.return_value = make_response([{"ServiceName": "x", "ServiceTags": None}])

        with patch.object(client, "_get_client", return_value=mock_http):
            entries = client.get_service("x", QUERY)

        assert entries[0].tags == []

    def test_list_tokens(self, client: ConsulClient) -> None:
        """Test ACL tokens are parsed."""
        mock_http = MagicMock()
        mock_http.get.return_value = make_response(
            [{"AccessorID": "abc", "Description": "token created via login", "Partition": "default"}]
        )

        with patch.object(client, "_get_client", return_value=mock_http):
            tokens = client.list_tokens(QUERY)

        assert tokens[0].accessor_id == "abc"
        assert tokens[0].description == "token created via login"
        mock_http.get.assert_called_once_with(
            "/v1/acl/tokens", params={"partition": "secondary", "ns": "ns1"}
        )

    def test_connection_error(self, client: ConsulClient) -> None:
        """Test connection failures raise ConsulConnectionError."""
        mock_http = MagicMock()
        mock_http.get.side_effect = httpx.ConnectError("connection refused")

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(ConsulConnectionError, match="10.0.0.5"):
                client.list_services(QUERY)

    def test_timeout(self, client: ConsulClient) -> None:
        """Test timeouts raise ConsulConnectionError."""
        mock_http = MagicMock()
        mock_http.get.side_effect = httpx.ReadTimeout("timed out")

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(ConsulConnectionError, match="Timeout"):
                client.list_tokens(QUERY)

    def test_http_error(self, client: ConsulClient) -> None:
        """Test error responses raise ConsulAPIError with the query scope."""
        response = make_response({})
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "403 Forbidden", request=MagicMock(), response=MagicMock()
        )
        mock_http = MagicMock()
        mock_http.get.return_value = response

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(ConsulAPIError, match="partition 'secondary'"):
                client.list_services(QUERY)

    def test_token_header(self, client: ConsulClient) -> None:
        """Test the ACL token is sent with every request."""
        http_client = client._get_client()
        try:
            assert http_client.headers["X-Consul-Token"] == "secret-token"
            assert str(http_client.base_url).startswith("https://10.0.0.5:8501")
        finally:
            client.close()

    def test_no_token_header_without_token(self) -> None:
        """Test no token header is sent without a token."""
        with ConsulClient("https://10.0.0.5:8501") as client:
            assert "X-Consul-Token" not in client._get_client().headers

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ReadError("connection reset by peer"),
            httpx.RemoteProtocolError("server disconnected without sending a response"),
            httpx.WriteError("broken pipe"),
        ],
    )
    def test_transport_errors(self, client: ConsulClient, error: httpx.TransportError) -> None:
        """Test every transport failure raises ConsulConnectionError."""
        mock_http = MagicMock()
        mock_http.get.side_effect = error

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(ConsulConnectionError, match="list services"):
                client.list_services(QUERY)

    def test_invalid_json(self, client: ConsulClient) -> None:
        """Test an undecodable body raises ConsulAPIError with the query scope."""
        response = make_response({})
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        mock_http = MagicMock()
        mock_http.get.return_value = response

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(ConsulAPIError, match="Invalid response to list ACL tokens"):
                client.list_tokens(QUERY)

    def test_connection_reset_through_transport(self) -> None:
        """Test a reset raised by the transport is mapped, not leaked."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset by peer", request=request)

        client = ConsulClient("https://10.0.0.5:8501")
        client._http_client = httpx.Client(
            base_url=client.address, transport=httpx.MockTransport(handler)
        )

        with client:
            with pytest.raises(ConsulConnectionError, match="connection reset by peer"):
                client.get_service("static-server", QUERY)
