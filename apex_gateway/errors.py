"""Exceptions raised by apex-gateway."""


class ApexGatewayError(Exception):
    """Base class for errors the CLI reports and exits on."""


class ConfigError(ApexGatewayError):
    """Project descriptor or function tree is missing or unusable."""


class RenderError(ApexGatewayError):
    """Swagger document could not be rendered."""


class RemoteError(ApexGatewayError):
    """An AWS call failed; ``stage`` names the step that failed."""

    def __init__(self, stage, cause):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
