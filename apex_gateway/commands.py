"""
The ``create`` and ``update`` commands.

Each command loads the project descriptor, then runs its AWS calls in
order. A failed call raises RemoteError and nothing after it runs;
permission grants are the exception, they are independent of each other.
"""

import logging
import os
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from apex_gateway.aws import GatewayClient
from apex_gateway.config import (
    DEFAULT_CONFIG,
    Settings,
    gateway_section,
    load_config,
    require_rest_api_id,
    rest_api_id,
    save_rest_api_id,
)
from apex_gateway.errors import ConfigError, RemoteError
from apex_gateway.functions import FUNCTIONS_DIR, scan_functions
from apex_gateway.swagger import build_swagger, dumps

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "swagger.json"


def _remote(stage, call, *args, **kwargs):
    try:
        return call(*args, **kwargs)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ {stage} failed: {e}", exc_info=True)
        raise RemoteError(stage, e)


def create(name: str,
           description: Optional[str] = None,
           clone_from: Optional[str] = None,
           config_path: str = DEFAULT_CONFIG,
           force: bool = False,
           region: Optional[str] = None,
           client: Optional[GatewayClient] = None) -> bool:
    """
    Create a REST API and store its id in the project descriptor.

    Returns False, without calling AWS or touching the file, when an id is
    already configured and ``force`` is not set.
    """
    project_config = load_config(config_path)

    existing = rest_api_id(project_config)
    if existing and not force:
        logger.error(
            f"A REST API id ({existing}) is already defined in {config_path}, "
            "if you really want to override this use -f parameter")
        return False

    client = client or _remote('Connect to AWS', GatewayClient,
                              Settings.resolve(project_config, region))
    api_id = _remote('Create REST API', client.create_api,
                     name, description, clone_from)

    save_rest_api_id(config_path, project_config, api_id)
    logger.info("Success! Now you can push your REST API using update command.")
    return True


def update(config_path: str = DEFAULT_CONFIG,
           stdout: bool = False,
           functions_dir: Optional[str] = None,
           output: str = DEFAULT_OUTPUT,
           region: Optional[str] = None,
           client: Optional[GatewayClient] = None,
           strict: bool = False) -> bool:
    """
    Render the Swagger document and publish it, or write it locally.

    Returns True when every step succeeded, False when the API was
    deployed but at least one permission grant failed.
    """
    project_config = load_config(config_path)
    api_id = require_rest_api_id(project_config)
    gateway = gateway_section(project_config)

    functions_dir = functions_dir or os.path.join(os.getcwd(), FUNCTIONS_DIR)
    functions = scan_functions(functions_dir)
    swagger = build_swagger(project_config, functions, strict=strict)

    if stdout:
        output_path = os.path.join(os.getcwd(), output)
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(dumps(swagger))
        except OSError as e:
            raise ConfigError(f"Cannot write {output_path}: {e}")
        logger.info(f"Success! You can now view your swagger file locally at {output_path}")
        return True

    stage_name = gateway.get('stage_name')
    if not stage_name:
        raise ConfigError("Missing stage_name in the x-api-gateway configuration.")

    client = client or _remote('Connect to AWS', GatewayClient,
                              Settings.resolve(project_config, region))
    _remote('Update REST API', client.publish_specification, api_id, swagger)
    _remote('Deploy REST API', client.create_deployment, api_id, stage_name)

    project_name = project_config.get('name')
    function_names = [f.qualified_name(project_name) for f in functions if f.exposed]
    if not function_names:
        logger.info("No functions exposed through API Gateway, nothing to grant")
        return True

    source_arn = _remote('Resolve account id', client.source_arn, api_id)
    results = client.grant_all(function_names, api_id, source_arn=source_arn)

    failed = [r.function_name for r in results if not r.ok]
    if failed:
        logger.error(f"❌ Failed to grant permission for {len(failed)} of "
                     f"{len(results)} functions: {', '.join(sorted(failed))}")
        return False

    logger.info(f"🎉 API successfully granted access to {len(results)} lambda functions!")
    return True
