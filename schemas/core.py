import random

from pydantic import BaseModel, ConfigDict, Field

class StreamMessage(BaseModel):
    """Canonical schema for one Redis stream entry claimed through XREADGROUP."""
    model_config = ConfigDict(frozen=True)

    stream: str = Field(description="Name of the Redis stream the entry was read from")
    msg_id: str = Field(description="Redis stream message ID (timestamp-sequence format)")
    fields: dict[str, str] = Field(default_factory=dict, description="Field mapping stored in the stream entry")

class InvocationResult(BaseModel):
    """Outcome of one compute invocation for one message. Never persisted."""
    status_code: int | None = Field(default=None, description="Status code returned by the compute target")
    payload: str = Field(default="", description="Decoded response body")
    function_error: str | None = Field(default=None, description="Error type reported by the function itself, if any")
    error: str | None = Field(default=None, description="Transport or client error detail, if the call itself failed")

    @property
    def ok(self) -> bool:
        if self.error is not None or self.function_error is not None:
            return False
        return self.status_code is not None and 200 <= self.status_code < 300

class RetryPolicy(BaseModel):
    """Backoff applied between consecutive failed stream reads."""
    initial_delay_seconds: float = Field(default=0.5, ge=0, description="Delay before the first retry")
    max_delay_seconds: float = Field(default=30.0, ge=0, description="Upper bound for any single delay")
    multiplier: float = Field(default=2.0, ge=1, description="Exponential base applied per consecutive failure")
    jitter: bool = Field(default=True, description="Spread delays with equal jitter (half fixed, half random)")

    def delay_for(self, attempt: int) -> float:
        """
        Delay in seconds before retrying after the given 0-indexed consecutive failure.
        """

        if self.initial_delay_seconds == 0:
            return 0.0

        try:
            delay = min(self.initial_delay_seconds * (self.multiplier ** attempt), self.max_delay_seconds)
        except OverflowError:
            # multiplier ** attempt no longer fits in a float
            delay = self.max_delay_seconds

        if self.jitter:
            delay = delay / 2 + random.uniform(0, delay / 2)

        return delay

class BridgeSettings(BaseModel):
    """Process configuration, loaded once from the environment at startup."""
    redis_url: str = Field(min_length=1, description="Redis connection URL (scheme, host, credentials)")
    streams: list[str] = Field(min_length=1, description="Streams consumed through the group")
    consumer_group: str = Field(min_length=1, description="Consumer group shared across all streams")
    lambda_name: str = Field(min_length=1, description="Name or ARN of the Lambda function to invoke")
    consumer_name: str = Field(min_length=1, description="Consumer identity used for claims, unique per process")
    batch_size: int = Field(default=10, ge=1, description="Maximum number of entries claimed per read")
    block_ms: int = Field(default=0, ge=0, description="XREADGROUP block time in milliseconds, 0 blocks forever")
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    aws_region: str | None = Field(default=None, description="Region for the Lambda client, boto3 default chain when unset")
    lambda_read_timeout_seconds: int = Field(default=900, ge=1, description="Socket read timeout for a synchronous invocation")
    lambda_max_attempts: int = Field(default=1, ge=1, description="Total botocore attempts per invocation, 1 disables client retries")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern="^(console|json)$")
