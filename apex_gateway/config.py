"""
Project descriptor handling.

Reads the Apex ``project.json`` file, exposes the ``x-api-gateway``
section and writes the REST API id back after ``create``.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from apex_gateway.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "project.json"
DEFAULT_REGION = "eu-west-2"
GATEWAY_KEY = "x-api-gateway"
REST_API_ID_KEY = "rest-api-id"


def resolve_path(path: str) -> str:
    """Resolve a relative path against the current working directory."""
    return os.path.join(os.getcwd(), path)


def load_config(path: str = DEFAULT_CONFIG) -> Dict[str, Any]:
    """Load and parse the project descriptor."""
    config_path = resolve_path(path)
    logger.debug(f"Loading project configuration from {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Project file not found at {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Project file {config_path} is not valid JSON: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read project file {config_path}: {e}")

    if not isinstance(config, dict):
        raise ConfigError(
            f"Project file {config_path} must contain a JSON object")
    return config


def gateway_section(config: Dict[str, Any]) -> Dict[str, Any]:
    return config.get(GATEWAY_KEY) or {}


def rest_api_id(config: Dict[str, Any]) -> Optional[str]:
    return gateway_section(config).get(REST_API_ID_KEY) or None


def require_rest_api_id(config: Dict[str, Any]) -> str:
    api_id = rest_api_id(config)
    if not api_id:
        raise ConfigError(
            "Missing REST API id, you might want to use create command first.")
    return api_id


def save_rest_api_id(path: str, config: Dict[str, Any], api_id: str) -> Dict[str, Any]:
    """
    Write the REST API id into the project descriptor.

    Top-level keys are copied as they are; only the gateway section is
    merged, so everything else in the file survives the rewrite.
    """
    gateway = dict(gateway_section(config))
    gateway[REST_API_ID_KEY] = api_id
    updated = dict(config)
    updated[GATEWAY_KEY] = gateway

    config_path = resolve_path(path)
    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write(json.dumps(updated, indent=2, ensure_ascii=False) + "\n")
    except OSError as e:
        raise ConfigError(f"Cannot write project file {config_path}: {e}")

    logger.debug(f"Saved REST API id {api_id} to {config_path}")
    return updated


@dataclass
class Settings:
    """AWS settings threaded into the remote client."""

    region: str = DEFAULT_REGION
    account_id: Optional[str] = None
    profile: Optional[str] = None

    @classmethod
    def resolve(cls, config: Dict[str, Any], region: Optional[str] = None) -> "Settings":
        """
        Build settings for a project.

        Region precedence: explicit argument, project ``region``, then
        ``AWS_REGION`` / ``AWS_DEFAULT_REGION``, then ``eu-west-2``.
        """
        region = (region
                  or config.get('region')
                  or os.getenv('AWS_REGION')
                  or os.getenv('AWS_DEFAULT_REGION')
                  or DEFAULT_REGION)
        return cls(
            region=region,
            account_id=config.get('account-id') or None,
            profile=os.getenv('AWS_PROFILE') or None,
        )
