"""AWS client helpers.

Thin wrappers around boto3 shared by the AWS integrations: client creation,
a single call entry point with optional pagination, and an error handling
decorator that logs AWS failures and returns False instead of raising.
"""

from functools import wraps

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
from core.config import settings
from core.logging import get_module_logger

logger = get_module_logger()

AWS_REGION = settings.aws.AWS_REGION
THROTTLING_ERRORS = settings.aws.THROTTLING_ERRS
RESOURCE_NOT_FOUND_ERRORS = settings.aws.RESOURCE_NOT_FOUND_ERRS


def handle_aws_api_errors(func):
    """Decorator to handle AWS API errors.

    Throttling is logged at info level, missing resources as warnings and
    everything else as errors. The decorated function returns False on any
    failure.

    Args:
        func (function): The function to decorate.

    Returns:
        The decorated function with error handling.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BotoCoreError as e:
            logger.error(
                "boto_core_error",
                module=func.__module__,
                function=func.__name__,
                error=str(e),
            )
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code in THROTTLING_ERRORS:
                logger.info(
                    "aws_throttling_error",
                    module=func.__module__,
                    function=func.__name__,
                    error=str(e),
                )
            elif code in RESOURCE_NOT_FOUND_ERRORS:
                logger.warning(
                    "aws_resource_not_found",
                    module=func.__module__,
                    function=func.__name__,
                    error=str(e),
                )
            else:
                logger.error(
                    "aws_client_error",
                    module=func.__module__,
                    function=func.__name__,
                    error_code=code,
                    error=str(e),
                )
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "unexpected_error",
                module=func.__module__,
                function=func.__name__,
                error=str(e),
            )
        return False

    return wrapper


def get_aws_service_client(service_name, session_config=None, client_config=None):
    """Get an AWS service client.

    Args:
        service_name (str): The name of the AWS service.
        session_config (dict, optional): Keyword arguments for boto3.Session.
        client_config (dict, optional): Keyword arguments for the client
            (region_name, endpoint_url...).

    Returns:
        botocore.client.BaseClient: The service client.
    """
    session = boto3.Session(**(session_config or {}))
    return session.client(service_name, **(client_config or {}))


def execute_aws_api_call(
    service_name,
    method,
    paginated=False,
    keys=None,
    session_config=None,
    client_config=None,
    **kwargs,
):
    """Execute an AWS API call.

    Args:
        service_name (str): The name of the AWS service.
        method (str): The method to call on the service client.
        paginated (bool, optional): Whether to paginate the API call.
        keys (list, optional): Keys to collect from each page when paginating.
        session_config (dict, optional): Keyword arguments for boto3.Session.
        client_config (dict, optional): Keyword arguments for the client.
        **kwargs: Additional keyword arguments for the API call.

    Returns:
        list or dict: A list of all results when paginated, otherwise the raw
        response dict.

    Raises:
        RuntimeError: If the response status code is not 200.
    """
    if session_config is None:
        session_config = {"region_name": AWS_REGION}
    if client_config is None:
        client_config = {"region_name": AWS_REGION}

    client = get_aws_service_client(
        service_name,
        session_config=session_config,
        client_config=client_config,
    )
    if paginated:
        return paginator(client, method, keys, **kwargs)

    results = getattr(client, method)(**kwargs)
    status_code = results.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
    if status_code != 200:
        logger.error(
            "api_call_failed",
            service=service_name,
            method=method,
            status_code=status_code,
        )
        raise RuntimeError(
            f"API call to {service_name}.{method} failed with status code {status_code}"
        )
    return results


def paginator(client: BaseClient, operation, keys=None, **kwargs):
    """Generic paginator for AWS operations

    Args:
        client (BaseClient): The service client.
        operation (str): The operation to paginate.
        keys (list, optional): The keys to extract from the paginated results.
        **kwargs: Additional keyword arguments for the operation.

    Returns:
        list: The paginated results.

    Reference: https://boto3.amazonaws.com/v1/documentation/api/latest/guide/paginators.html
    """
    pages = client.get_paginator(operation)
    results = []

    for page in pages.paginate(**kwargs):
        if keys is None:
            for key, value in page.items():
                if key == "ResponseMetadata":
                    continue
                if isinstance(value, list):
                    results.extend(value)
                else:
                    results.append(value)
        else:
            for key in keys:
                if key in page:
                    results.extend(page[key])

    return results
