"""
apex-gateway: publish an Apex project's functions through AWS API Gateway.

Renders a Swagger 2.0 document from the per-function ``function.json``
files, pushes it to a REST API, deploys a stage and grants API Gateway
permission to invoke each Lambda function.
"""

__version__ = "0.1.0"
