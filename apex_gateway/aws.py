"""
AWS calls made by apex-gateway.

Thin wrapper over the boto3 ``apigateway``, ``lambda`` and ``sts``
clients. Methods return the response data and let botocore errors
propagate; the commands module decides what a failure stops.
"""

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from apex_gateway.config import Settings
from apex_gateway.swagger import dumps

logger = logging.getLogger(__name__)

INVOKE_ACTION = "lambda:InvokeFunction"
GATEWAY_PRINCIPAL = "apigateway.amazonaws.com"


def statement_id(api_id: str, function_name: str) -> str:
    """Permission statement id, stable for a function within one REST API."""
    digest = hashlib.sha1(function_name.encode('utf-8')).hexdigest()[:12]
    return f"apex-gateway-{api_id}-{digest}"


@dataclass
class GrantResult:
    function_name: str
    ok: bool
    error: Optional[Exception] = None


class GatewayClient:
    """Creates, publishes and deploys REST APIs and grants Lambda access."""

    def __init__(self, settings: Settings, session: Optional[boto3.session.Session] = None):
        self.settings = settings
        self.region = settings.region
        self.session = session or boto3.session.Session(
            profile_name=settings.profile, region_name=settings.region)

        self.apigateway_client = self.session.client('apigateway', region_name=self.region)
        self.lambda_client = self.session.client('lambda', region_name=self.region)
        self._account_id = settings.account_id

    def create_api(self, name: str, description: Optional[str] = None,
                   clone_from: Optional[str] = None) -> str:
        """Create a REST API and return its id."""
        params: Dict[str, Any] = {'name': name}
        if description:
            params['description'] = description
        if clone_from:
            params['cloneFrom'] = clone_from

        logger.info(f"Creating REST API {name}...")
        response = self.apigateway_client.create_rest_api(**params)
        api_id = response['id']
        logger.info(f"✅ Created REST API: {api_id}")
        return api_id

    def publish_specification(self, api_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite the REST API definition with a Swagger document."""
        logger.info("Pushing REST API...")
        response = self.apigateway_client.put_rest_api(
            restApiId=api_id,
            mode='overwrite',
            body=dumps(document).encode('utf-8'),
        )
        logger.info("✅ Updated API with success!")
        return response

    def create_deployment(self, api_id: str, stage_name: str) -> Dict[str, Any]:
        """Deploy the REST API to a stage."""
        logger.info(f"Deploying REST API to {stage_name} stage...")
        response = self.apigateway_client.create_deployment(
            restApiId=api_id,
            stageName=stage_name,
        )
        logger.info(f"✅ API deployed successfully! Deployment ID: {response.get('id')}")
        return response

    def account_id(self) -> str:
        """AWS account id from the project, or from STS when it is not set."""
        if not self._account_id:
            sts_client = self.session.client('sts', region_name=self.region)
            self._account_id = sts_client.get_caller_identity()['Account']
            logger.debug(f"Resolved account id {self._account_id} from STS")
        return self._account_id

    def source_arn(self, api_id: str) -> str:
        """execute-api ARN covering every stage, method and path of the API."""
        return f"arn:aws:execute-api:{self.region}:{self.account_id()}:{api_id}/*/*/"

    def grant_invoke_permission(self, function_name: str, source_arn: str,
                                statement: str) -> None:
        """Allow API Gateway to invoke a Lambda function."""
        try:
            self.lambda_client.add_permission(
                FunctionName=function_name,
                StatementId=statement,
                Action=INVOKE_ACTION,
                Principal=GATEWAY_PRINCIPAL,
                SourceArn=source_arn,
            )
            logger.info(f"✅ API successfully granted access to {function_name}")
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceConflictException':
                logger.info(f"Permission already exists for {function_name}")
            else:
                raise

    def grant_all(self, function_names: Iterable[str], api_id: str,
                  source_arn: Optional[str] = None, max_workers: int = 8) -> List[GrantResult]:
        """
        Grant invoke permission to every function concurrently.

        Grants are independent: one failing neither stops nor undoes the
        others. Every outcome is logged and returned, in completion order.
        """
        function_names = list(function_names)
        if not function_names:
            return []
        source_arn = source_arn or self.source_arn(api_id)

        results = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_function = {
                executor.submit(
                    self.grant_invoke_permission,
                    name,
                    source_arn,
                    statement_id(api_id, name),
                ): name for name in function_names
            }

            for future in as_completed(future_to_function):
                name = future_to_function[future]
                try:
                    future.result()
                    results.append(GrantResult(name, True))
                except (ClientError, BotoCoreError) as e:
                    logger.error(f"❌ Failed to grant permission for {name}: {e}")
                    logger.debug("Grant failure details", exc_info=True)
                    results.append(GrantResult(name, False, e))

        return results
