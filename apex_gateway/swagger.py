"""
Swagger 2.0 rendering.

Builds the path table from the function definitions, the project's
``swagger-func-template`` and its regex-keyed ``paths`` overrides, then
wraps it in the document API Gateway imports. Nothing here does I/O.
"""

import copy
import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from apex_gateway.config import gateway_section
from apex_gateway.errors import RenderError
from apex_gateway.functions import FunctionDef

logger = logging.getLogger(__name__)

INTEGRATION_KEY = "x-amazon-apigateway-integration"
TEMPLATE_KEY = "swagger-func-template"
PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

SECURITY_DEFINITIONS = {
    "api_key": {
        "type": "apiKey",
        "name": "x-api-key",
        "in": "header",
    }
}
DEFINITIONS = {
    "Empty": {
        "type": "object",
    }
}


def defaults_deep(dest: Dict[str, Any], *sources: Mapping) -> Dict[str, Any]:
    """
    Fill keys missing from ``dest`` with values from ``sources``.

    Nested mappings are merged recursively; a key already present in
    ``dest`` is never overwritten. Values taken from a source are deep
    copied so ``dest`` never aliases it. Mutates and returns ``dest``.
    """
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            if key not in dest:
                dest[key] = copy.deepcopy(value)
            elif isinstance(dest[key], dict) and isinstance(value, Mapping):
                defaults_deep(dest[key], value)
    return dest


def substitute(text: str, **values: str) -> str:
    """Replace ``{{name}}`` tokens; unknown tokens are left as they are."""
    def replace(match):
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return PLACEHOLDER.sub(replace, text)


def render_method(project_name: str, function: FunctionDef, template: Mapping) -> Dict[str, Any]:
    """Render one operation object for ``function`` on top of ``template``."""
    template = copy.deepcopy(template or {})
    integration = template.get(INTEGRATION_KEY) or {}

    method: Dict[str, Any] = {}
    if function.description is not None:
        method['description'] = function.description

    # Lambda is always invoked with POST, whatever the route method is
    method[INTEGRATION_KEY] = {'httpMethod': 'POST'}
    if 'uri' in integration:
        method[INTEGRATION_KEY]['uri'] = substitute(
            integration['uri'],
            functionName=function.qualified_name(project_name))

    if function.parameters is not None:
        method['parameters'] = copy.deepcopy(function.parameters)

    return defaults_deep(method, template)


def render_paths(project_name: str,
                 functions: Iterable[FunctionDef],
                 template: Mapping,
                 overrides: Optional[Mapping] = None,
                 strict: bool = False) -> Dict[str, Dict[str, Any]]:
    """
    Build the Swagger ``paths`` table.

    Functions without both a path and a method are left out. When two
    functions claim the same path and method the later one wins, unless
    ``strict`` is set, in which case a RenderError is raised. Each key of
    ``overrides`` is a regular expression matched against the whole path;
    its value only fills fields the rendered operations do not set.
    """
    paths: Dict[str, Dict[str, Any]] = {}
    owners: Dict[tuple, tuple] = {}

    for function in functions:
        if not function.exposed:
            logger.debug(f"{function.name} has no API Gateway route, skipping")
            continue

        path = function.path
        method = function.method
        # keys keep the declared casing; collisions are detected case-insensitively
        route = (path, method.lower())
        previous = owners.get(route)
        if previous is not None:
            previous_name, previous_method = previous
            message = (f"{function.name} and {previous_name} both declare "
                       f"{method.upper()} {path}")
            if strict:
                raise RenderError(message)
            logger.warning(f"{message}; using {function.name}")
            paths[path].pop(previous_method, None)

        paths.setdefault(path, {})[method] = render_method(
            project_name, function, template)
        owners[route] = (function.name, method)

    for pattern, override in (overrides or {}).items():
        key_pattern = re.compile(f"^{pattern}$")
        for path, operations in paths.items():
            if key_pattern.fullmatch(path):
                logger.debug(f"Applying path override {pattern!r} to {path}")
                defaults_deep(operations, override)

    return paths


def timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with milliseconds, e.g. 2024-01-02T03:04:05.678Z."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def build_swagger(project: Mapping,
                  functions: Iterable[FunctionDef],
                  now: Optional[datetime] = None,
                  strict: bool = False) -> Dict[str, Any]:
    """Render the complete Swagger document for a project."""
    gateway = gateway_section(project)
    paths = render_paths(
        project.get('name'),
        functions,
        gateway.get(TEMPLATE_KEY) or {},
        gateway.get('paths'),
        strict=strict,
    )

    return {
        "swagger": "2.0",
        "info": {
            "version": timestamp(now),
            "title": project.get('name'),
        },
        "basePath": gateway.get('base_path'),
        "schemes": [
            "https"
        ],
        "paths": paths,
        "securityDefinitions": copy.deepcopy(SECURITY_DEFINITIONS),
        "definitions": copy.deepcopy(DEFINITIONS),
    }


def dumps(document: Mapping) -> str:
    """Serialise a document as single-line JSON."""
    return json.dumps(document, separators=(',', ':'), ensure_ascii=False)
