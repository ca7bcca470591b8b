"""Pytest fixtures for apex-gateway tests."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from apex_gateway.aws import GatewayClient, GrantResult

TEMPLATE_URI = (
    "arn:aws:apigateway:eu-west-2:lambda:path/2015-03-31/functions/"
    "arn:aws:lambda:eu-west-2:123456789012:function:{{functionName}}/invocations"
)


def client_error(code: str, operation: str = "AddPermission") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


@pytest.fixture
def project() -> dict:
    return {
        "name": "orders",
        "description": "Orders service",
        "memory": 128,
        "account-id": "123456789012",
        "x-api-gateway": {
            "rest-api-id": "abc123",
            "base_path": "/v1",
            "stage_name": "prod",
            "paths": {},
            "swagger-func-template": {
                "consumes": ["application/json"],
                "produces": ["application/json"],
                "responses": {"200": {"description": "OK", "schema": {"$ref": "#/definitions/Empty"}}},
                "x-amazon-apigateway-integration": {
                    "uri": TEMPLATE_URI,
                    "type": "aws_proxy",
                    "passthroughBehavior": "when_no_match",
                },
            },
        },
    }


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, project: dict) -> Path:
    """Temporary Apex project (project.json + empty functions/) used as cwd."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "functions").mkdir()
    (tmp_path / "project.json").write_text(json.dumps(project, indent=2))
    return tmp_path


@pytest.fixture
def write_project(project_dir: Path):
    def write(config: dict) -> Path:
        path = project_dir / "project.json"
        path.write_text(json.dumps(config, indent=2))
        return path

    return write


@pytest.fixture
def add_function(project_dir: Path):
    """Create functions/<name>/function.json; raw strings are written verbatim."""

    def add(name: str, definition) -> Path:
        folder = project_dir / "functions" / name
        folder.mkdir()
        body = definition if isinstance(definition, str) else json.dumps(definition)
        (folder / "function.json").write_text(body)
        return folder

    return add


@pytest.fixture
def gateway_client() -> MagicMock:
    client = MagicMock(spec=GatewayClient)
    client.create_api.return_value = "new123"
    client.source_arn.return_value = "arn:aws:execute-api:eu-west-2:123456789012:abc123/*/*/"
    client.grant_all.side_effect = lambda names, api_id, source_arn=None: [
        GrantResult(name, True) for name in names
    ]
    return client
