"""Discovery of Apex function definitions under ``functions/``."""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apex_gateway.config import GATEWAY_KEY
from apex_gateway.errors import ConfigError

logger = logging.getLogger(__name__)

FUNCTIONS_DIR = "functions"
DEFINITION_FILE = "function.json"


@dataclass
class FunctionDef:
    """A function directory name and its parsed ``function.json``."""

    name: str
    definition: Dict[str, Any] = field(default_factory=dict)

    @property
    def gateway(self) -> Dict[str, Any]:
        section = self.definition.get(GATEWAY_KEY)
        return section if isinstance(section, dict) else {}

    @property
    def description(self) -> Optional[str]:
        return self.definition.get('description')

    @property
    def path(self) -> Optional[str]:
        path = self.gateway.get('path')
        return path if isinstance(path, str) and path else None

    @property
    def method(self) -> Optional[str]:
        method = self.gateway.get('method')
        return method if isinstance(method, str) and method else None

    @property
    def parameters(self) -> Optional[List[Any]]:
        return self.gateway.get('parameters')

    @property
    def exposed(self) -> bool:
        """True when the function declares both a route path and a method."""
        return bool(self.path and self.method)

    def qualified_name(self, project_name: str) -> str:
        """Lambda function name as deployed by Apex."""
        return f"{project_name}_{self.name}"


def _read_definition(definition_path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(definition_path, 'r', encoding='utf-8') as f:
            definition = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Skipping {definition_path}: {e}")
        return None

    if not isinstance(definition, dict):
        logger.debug(f"Skipping {definition_path}: not a JSON object")
        return None
    return definition


def scan_functions(root: str) -> List[FunctionDef]:
    """
    Read one ``function.json`` per subdirectory of ``root``.

    Functions whose definition is missing or malformed are skipped. The
    result follows ``os.listdir`` order, which is not sorted.
    """
    if not os.path.isdir(root):
        raise ConfigError(f"Functions directory not found at {root}")

    functions = []
    for entry in os.listdir(root):
        function_dir = os.path.join(root, entry)
        if not os.path.isdir(function_dir):
            continue

        definition = _read_definition(os.path.join(function_dir, DEFINITION_FILE))
        if definition is None:
            continue
        functions.append(FunctionDef(name=entry, definition=definition))

    logger.info(f"Found {len(functions)} function definitions in {root}")
    return functions
