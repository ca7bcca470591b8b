"""Tests for the boto3 wrapper, with the AWS clients mocked out."""

import json
import threading
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from apex_gateway.aws import GatewayClient, statement_id
from apex_gateway.config import Settings

from conftest import client_error


@pytest.fixture
def clients() -> dict:
    return {"apigateway": MagicMock(), "lambda": MagicMock(), "sts": MagicMock()}


@pytest.fixture
def session(clients: dict) -> MagicMock:
    session = MagicMock()
    session.client.side_effect = lambda name, **kwargs: clients[name]
    return session


@pytest.fixture
def gateway(session: MagicMock) -> GatewayClient:
    return GatewayClient(Settings(region="eu-west-2", account_id="123456789012"), session=session)


def test_clients_use_settings_region(gateway: GatewayClient, session: MagicMock) -> None:
    regions = {call.args[0]: call.kwargs["region_name"] for call in session.client.call_args_list}
    assert regions == {"apigateway": "eu-west-2", "lambda": "eu-west-2"}


def test_create_api(gateway: GatewayClient, clients: dict) -> None:
    clients["apigateway"].create_rest_api.return_value = {"id": "xyz789"}
    assert gateway.create_api("orders", "Orders API", "src123") == "xyz789"
    clients["apigateway"].create_rest_api.assert_called_once_with(
        name="orders", description="Orders API", cloneFrom="src123"
    )


def test_create_api_omits_empty_arguments(gateway: GatewayClient, clients: dict) -> None:
    clients["apigateway"].create_rest_api.return_value = {"id": "xyz789"}
    gateway.create_api("orders")
    clients["apigateway"].create_rest_api.assert_called_once_with(name="orders")


def test_publish_specification_overwrites(gateway: GatewayClient, clients: dict) -> None:
    document = {"swagger": "2.0", "paths": {}}
    gateway.publish_specification("abc123", document)

    kwargs = clients["apigateway"].put_rest_api.call_args.kwargs
    assert kwargs["restApiId"] == "abc123"
    assert kwargs["mode"] == "overwrite"
    assert json.loads(kwargs["body"].decode("utf-8")) == document


def test_create_deployment(gateway: GatewayClient, clients: dict) -> None:
    clients["apigateway"].create_deployment.return_value = {"id": "dep1"}
    gateway.create_deployment("abc123", "prod")
    clients["apigateway"].create_deployment.assert_called_once_with(
        restApiId="abc123", stageName="prod"
    )


def test_source_arn_uses_configured_account(gateway: GatewayClient, clients: dict) -> None:
    assert gateway.source_arn("abc123") == "arn:aws:execute-api:eu-west-2:123456789012:abc123/*/*/"
    clients["sts"].get_caller_identity.assert_not_called()


def test_account_id_falls_back_to_sts(session: MagicMock, clients: dict) -> None:
    clients["sts"].get_caller_identity.return_value = {"Account": "999999999999"}
    gateway = GatewayClient(Settings(region="us-east-1"), session=session)

    assert gateway.source_arn("abc") == "arn:aws:execute-api:us-east-1:999999999999:abc/*/*/"
    assert gateway.account_id() == "999999999999"
    clients["sts"].get_caller_identity.assert_called_once_with()


def test_statement_id_is_stable_and_distinct() -> None:
    assert statement_id("abc", "orders_create") == statement_id("abc", "orders_create")
    assert statement_id("abc", "orders_create") != statement_id("abc", "orders_list")
    assert statement_id("abc", "orders_create") != statement_id("def", "orders_create")
    assert statement_id("abc", "orders_create").startswith("apex-gateway-abc-")


def test_grant_invoke_permission(gateway: GatewayClient, clients: dict) -> None:
    gateway.grant_invoke_permission("orders_create", "arn:src", "sid-1")
    clients["lambda"].add_permission.assert_called_once_with(
        FunctionName="orders_create",
        StatementId="sid-1",
        Action="lambda:InvokeFunction",
        Principal="apigateway.amazonaws.com",
        SourceArn="arn:src",
    )


def test_grant_existing_permission_is_success(gateway: GatewayClient, clients: dict) -> None:
    clients["lambda"].add_permission.side_effect = client_error("ResourceConflictException")
    gateway.grant_invoke_permission("orders_create", "arn:src", "sid-1")


def test_grant_other_errors_propagate(gateway: GatewayClient, clients: dict) -> None:
    clients["lambda"].add_permission.side_effect = client_error("AccessDeniedException")
    with pytest.raises(ClientError):
        gateway.grant_invoke_permission("orders_create", "arn:src", "sid-1")


def test_grant_all_collects_independent_outcomes(gateway: GatewayClient, clients: dict) -> None:
    lock = threading.Lock()
    seen = []

    def add_permission(**kwargs):
        with lock:
            seen.append(kwargs["FunctionName"])
        if kwargs["FunctionName"] == "orders_bad":
            raise client_error("ResourceNotFoundException")
        return {}

    clients["lambda"].add_permission.side_effect = add_permission
    results = gateway.grant_all(["orders_a", "orders_bad", "orders_b"], "abc123")

    assert sorted(seen) == ["orders_a", "orders_b", "orders_bad"]
    outcomes = {r.function_name: r.ok for r in results}
    assert outcomes == {"orders_a": True, "orders_b": True, "orders_bad": False}
    failed = next(r for r in results if not r.ok)
    assert isinstance(failed.error, ClientError)


def test_grant_all_uses_per_function_statement_ids(gateway: GatewayClient, clients: dict) -> None:
    gateway.grant_all(["orders_a", "orders_b"], "abc123", source_arn="arn:custom")

    calls = {c.kwargs["FunctionName"]: c.kwargs for c in clients["lambda"].add_permission.call_args_list}
    assert calls["orders_a"]["StatementId"] == statement_id("abc123", "orders_a")
    assert calls["orders_b"]["StatementId"] == statement_id("abc123", "orders_b")
    assert {c["SourceArn"] for c in calls.values()} == {"arn:custom"}


def test_grant_all_with_no_functions(gateway: GatewayClient, clients: dict) -> None:
    assert gateway.grant_all([], "abc123") == []
    clients["lambda"].add_permission.assert_not_called()
