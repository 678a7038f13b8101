import asyncio
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from schemas.core import InvocationResult

logger = logging.getLogger(__name__)

# Lambda's maximum function duration
DEFAULT_READ_TIMEOUT_SECONDS = 900
# A single attempt: botocore must not re-invoke a function that may already have run
DEFAULT_MAX_ATTEMPTS = 1


def create_lambda_client(
        region_name: str | None = None,
        read_timeout: int = DEFAULT_READ_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> Any:
    """
    Create a boto3 Lambda client.  Credentials and the region fall back to the standard boto3 chain.

    The read timeout covers a synchronous invocation for its whole run, and client-side retries are
    limited to max_attempts so one message is not invoked several times inside a single dispatch.
    """

    session = boto3.Session(region_name=region_name)
    return session.client(
        "lambda",
        config=Config(
            read_timeout=read_timeout,
            retries={"total_max_attempts": max_attempts}
        )
    )


class LambdaInvoker:
    """Invokes one Lambda function synchronously (RequestResponse) for each payload it is given."""

    def __init__(self, client: Any, function_name: str) -> None:
        self.client = client
        self.function_name: str = function_name

    def _invoke(self, payload: bytes) -> InvocationResult:
        response = self.client.invoke(
            FunctionName=self.function_name,
            InvocationType="RequestResponse",
            Payload=payload
        )

        body = response.get("Payload")
        raw = body.read() if body is not None else b""
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)

        return InvocationResult(
            status_code=response.get("StatusCode"),
            payload=text,
            function_error=response.get("FunctionError")
        )

    async def __call__(self, payload: bytes) -> InvocationResult:
        """
        Invoke the function with the given payload.  Client errors are returned as a failed result, not raised.
        """

        try:
            result = await asyncio.to_thread(self._invoke, payload)
        except (ClientError, BotoCoreError) as e:
            return InvocationResult(error=str(e))

        if result.ok:
            logger.info(
                "Lambda invoked successfully. StatusCode: %s, Payload: %s",
                result.status_code,
                result.payload,
                extra={"function_name": self.function_name, "status_code": result.status_code},
            )

        return result
